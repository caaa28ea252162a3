import json

from django.core.management.base import BaseCommand

from core.answers import answers_hash, normalize_answers
from core.catalog import get_scoring_catalog
from core.scoring import legacy_axis_scores, score_answers, to_snapshot_scale
from core.services import db
from quiz.services import half_life_days


class Command(BaseCommand):
    help = 'Print everything stored for one user and compare it with a fresh recomputation'

    def add_arguments(self, parser):
        parser.add_argument('uid', type=str)

    def dump(self, label, value):
        self.stdout.write(f'{label}: {json.dumps(value, indent=2, sort_keys=True, default=str)}')

    def handle(self, *args, **options):
        uid = options['uid']
        self.stdout.write(f'UID: {uid}')

        profile = db.get_user_profile(uid)
        self.stdout.write(f'\nusers/{uid} exists: {profile is not None}')
        if profile:
            self.dump('profile', profile)

        answers = normalize_answers(db.get_user_answers(uid))
        self.stdout.write(f'\nanswers/{uid}: {len(answers)} answers')
        self.stdout.write(f"answer keys: {', '.join(sorted(answers, key=lambda k: (not k.isdigit(), k.zfill(6))))}")
        self.stdout.write(f'answers hash: {answers_hash(answers)}')

        result = db.get_user_result(uid)
        self.stdout.write(f'\nresults/{uid} exists: {result is not None}')
        if result:
            self.dump('stored snapshot (-5..5)', {k: v for k, v in result.items() if k.endswith('_score')})
            self.stdout.write(f"stored answers hash: {result.get('answers_hash')}")
            self.stdout.write(f"insights: version={result.get('ai_version')} hash={result.get('ai_answers_hash')}")
            self.dump('stored snapshot as canonical (-1..1)', snapshot_scores(result))

        questions = get_scoring_catalog()
        scores = score_answers(answers, questions, half_life_days=half_life_days())
        self.dump('\nrecomputed canonical (-1..1)', scores)
        self.dump('recomputed snapshot (-5..5)', to_snapshot_scale(scores))
        self.dump('legacy snapshot (-5..5)', legacy_axis_scores(answers, questions))

        self.dump('\nhot topic deltas', db.get_hot_topic_deltas(uid))
