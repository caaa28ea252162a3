from django.core.management.base import BaseCommand, CommandError
from firebase_admin import auth

from core.middleware import invalidate_profile
from core.services import db


class Command(BaseCommand):
    help = 'Grant or revoke hot topic admin (is_super_staff) for a user by email or UID'

    def add_arguments(self, parser):
        parser.add_argument('identifier', type=str, help='User email or Firebase UID')
        parser.add_argument('--revoke', action='store_true', help='Remove the flag instead of setting it')

    def resolve_uid(self, identifier):
        if '@' not in identifier:
            return identifier
        try:
            return auth.get_user_by_email(identifier).uid
        except auth.UserNotFoundError:
            raise CommandError(f'No Firebase user with email {identifier}')

    def handle(self, *args, **options):
        uid = self.resolve_uid(options['identifier'])
        is_super_staff = not options['revoke']

        if not db.get_user_profile(uid):
            raise CommandError(f'No users/{uid} profile. The user must sign in once first.')

        db.set_super_staff(uid, is_super_staff)
        invalidate_profile(uid)
        self.stdout.write(self.style.SUCCESS(f'Set is_super_staff={is_super_staff} for {uid}'))
