from django.core.management.base import BaseCommand, CommandError

from core.answers import normalize_answers
from core.services import db


class Command(BaseCommand):
    help = 'Create answers/{uid} from the answers stored on results/{uid} when it is missing'

    def add_arguments(self, parser):
        parser.add_argument('uid', type=str)
        parser.add_argument('--force', action='store_true', help='Overwrite an existing answers document')

    def handle(self, *args, **options):
        uid = options['uid']

        existing = db.get_user_answers(uid)
        if existing and not options['force']:
            self.stdout.write(self.style.WARNING(
                f'answers/{uid} already has {len(existing)} answers. Use --force to overwrite.'
            ))
            return

        result = db.get_user_result(uid)
        if not result:
            raise CommandError(f'No results/{uid} document')

        answers = normalize_answers(result.get('answers'))
        if not answers:
            raise CommandError(f'results/{uid} has no answers to copy')

        db.save_user_answers(uid, answers)
        self.stdout.write(self.style.SUCCESS(f'Wrote {len(answers)} answers to answers/{uid}'))
