from django.core.management.base import BaseCommand
from firebase_admin import firestore

from core.quiz_data import QUESTIONS
from core.services import db


class Command(BaseCommand):
    help = 'Seeds the static quiz questions to Firestore (questions/{id})'

    def add_arguments(self, parser):
        parser.add_argument('--dry', action='store_true', help='Print what would be written without writing')

    def handle(self, *args, **options):
        dry = options['dry']
        self.stdout.write(f"Seeding {len(QUESTIONS)} questions{' (dry-run)' if dry else ''}...")

        written = 0
        for index, question in enumerate(QUESTIONS):
            doc_id = str(question['id'])
            if dry:
                self.stdout.write(f"  would write questions/{doc_id}: {question['text'][:60]}")
                continue
            try:
                db.set_document('questions', doc_id, {
                    **question,
                    'order': index,
                    'updated_at': firestore.SERVER_TIMESTAMP,
                })
                written += 1
            except Exception as e:
                self.stdout.write(self.style.ERROR(f'Error seeding question {doc_id}: {e}'))

        self.stdout.write(self.style.SUCCESS(f'Seeding complete! {written} questions written.'))
