from django.core.management.base import BaseCommand

from core.answers import normalize_answers
from core.catalog import get_scoring_catalog
from core.services import db
from quiz.services import half_life_days


class Command(BaseCommand):
    help = 'Recompute results/{uid} snapshots from stored answers'

    def add_arguments(self, parser):
        parser.add_argument('--dry', action='store_true', help='Report without writing')
        parser.add_argument('--limit', type=int, default=None, help='Process at most N users')
        parser.add_argument('--only', type=str, default=None, help='Comma separated uids to process')

    def load_answers(self, uid):
        """(answers, source) from answers/{uid}, else from the answers kept on results/{uid}."""
        answers = normalize_answers(db.get_user_answers(uid))
        if answers:
            return answers, f'answers/{uid}'

        result = db.get_user_result(uid) or {}
        answers = normalize_answers(result.get('answers'))
        if answers:
            return answers, f'results/{uid}'
        return None, None

    def handle(self, *args, **options):
        dry = options['dry']

        if options['only']:
            targets = [u.strip() for u in options['only'].split(',') if u.strip()]
            self.stdout.write(f"Only processing UIDs: {', '.join(targets)}")
        else:
            targets = [u['id'] for u in db.get_collection('users', limit=options['limit'])]
            self.stdout.write(f'Scanning users: {len(targets)} UIDs')

        questions = get_scoring_catalog()
        self.stdout.write(f"Loaded {len(questions)} questions. Backfill starting{' (dry-run)' if dry else ''}...")

        updated = skipped = errored = 0
        for uid in targets:
            try:
                answers, source = self.load_answers(uid)
                if not answers:
                    self.stdout.write(f'- {uid}: skip (no answers)')
                    skipped += 1
                    continue

                if not dry:
                    db.recompute_results(uid, answers, questions, half_life_days=half_life_days(),
                                         source=f'backfill:{source}')
                self.stdout.write(f'- {uid}: recomputed from {source} ({len(answers)} answers)')
                updated += 1
            except Exception as e:
                self.stdout.write(self.style.ERROR(f'! {uid}: {e}'))
                errored += 1

        self.stdout.write(self.style.SUCCESS(
            f"Backfill complete{' (dry-run)' if dry else ''}. "
            f"updated={updated} skipped={skipped} errored={errored}"
        ))
