import json
import logging

from django.conf import settings
from xai_sdk import Client
from xai_sdk.chat import user

from core.answers import answer_repository, answers_hash, normalize_answers
from core.catalog import get_scoring_catalog
from core.quiz_data import answer_label
from core.scoring import lookup_answer, score_answers, to_number, to_snapshot_scale
from core.services import db
from .prompts import CONTRADICTIONS_PROMPT_TEMPLATE, SUMMARY_PROMPT_TEMPLATE

logger = logging.getLogger(__name__)

MAX_CONTRADICTIONS = 5
MAX_DRIVERS = 5

# (question a, question b, note) flagged when both are answered 4 or 5
CONTRADICTION_PAIRS = [
    (
        '12', '28',
        "You support broad free speech while also favoring criminal penalties for hate speech. "
        "Clarify where you draw the line.",
    ),
    (
        '18', '15',
        "You value privacy but also endorse broad government monitoring of digital communications.",
    ),
    (
        '40', '20',
        "You favor preserving traditional family structures while also supporting recognition "
        "of same-sex marriage.",
    ),
]
AGREE_THRESHOLD = 4


def strip_markdown_json(content):
    if "```json" in content:
        return content.split("```json")[1].split("```")[0].strip()
    if "```" in content:
        return content.split("```")[1].split("```")[0].strip()
    return content.strip()


class InsightService:
    def __init__(self, api_key=None, model=None):
        self.api_key = api_key if api_key is not None else settings.GROK_API_KEY
        self.model = model or settings.INSIGHTS_MODEL

    def compact_answers(self, answers, questions):
        """Answered questions in catalog order, with the label the user saw."""
        items = []
        for question in questions:
            value = to_number(lookup_answer(answers, question.get('id')))
            if value is None:
                continue
            value = int(value) if value.is_integer() else value
            items.append({
                'id': str(question['id']),
                'axis': question.get('axis'),
                'text': question.get('text', ''),
                'value': value,
                'label': answer_label(question, value),
            })
        return items

    def detect_simple_contradictions(self, answers):
        """Deterministic checks that need no model."""
        issues = []
        for qid_a, qid_b, note in CONTRADICTION_PAIRS:
            a = to_number(lookup_answer(answers, qid_a))
            b = to_number(lookup_answer(answers, qid_b))
            if a is not None and b is not None and a >= AGREE_THRESHOLD and b >= AGREE_THRESHOLD:
                issues.append(note)
        return issues

    def call_grok(self, prompt):
        """Parsed JSON object from the model, or None when unavailable."""
        if not self.api_key:
            logger.info("GROK_API_KEY not set, skipping AI insights")
            return None

        try:
            client = Client(api_key=self.api_key)
            chat = client.chat.create(model=self.model)
            chat.append(user(prompt))
            response = chat.sample()

            parsed = json.loads(strip_markdown_json(response.content or ''))
            if not isinstance(parsed, dict):
                logger.warning("Grok returned JSON that is not an object")
                return None
            return parsed
        except Exception as e:
            logger.error(f"Grok SDK Error: {e}")
            return None

    def _clean_contradictions(self, raw):
        cleaned = []
        for item in raw if isinstance(raw, list) else []:
            if isinstance(item, dict):
                item = item.get('reason') or item.get('note')
            if isinstance(item, str) and item.strip():
                cleaned.append(item.strip())
        return cleaned

    def _clean_drivers(self, raw):
        drivers = []
        for item in raw if isinstance(raw, list) else []:
            if isinstance(item, dict) and item.get('driver'):
                drivers.append({
                    'qid': str(item.get('qid', '')),
                    'axis': item.get('axis'),
                    'driver': str(item['driver']),
                })
        return drivers[:MAX_DRIVERS]

    def generate_insights(self, answers, scores=None, questions=None):
        """
        Summary, contradictions and top drivers for an answer map.

        scores are canonical [-1, 1] values; they are computed when missing.
        Model failures leave summary and drivers empty and fall back to the
        local contradiction checks.
        """
        if questions is None:
            questions = get_scoring_catalog()
        if scores is None:
            scores = score_answers(answers, questions)

        items = self.compact_answers(answers, questions)
        local_issues = self.detect_simple_contradictions(answers)
        items_json = json.dumps(items, indent=2)

        contradictions_data = self.call_grok(CONTRADICTIONS_PROMPT_TEMPLATE.format(items_json=items_json))

        snapshot = to_snapshot_scale(scores)
        summary_data = self.call_grok(SUMMARY_PROMPT_TEMPLATE.format(
            economic=round(snapshot['economic'], 2),
            social=round(snapshot['social'], 2),
            global_=round(snapshot['global'], 2),
            progress=round(snapshot['progress'], 2),
            answered_count=len(items),
            total_count=len(questions),
            items_json=items_json,
        ))

        contradictions = local_issues
        if contradictions_data is not None:
            model_issues = self._clean_contradictions(contradictions_data.get('contradictions'))
            contradictions = list(dict.fromkeys(model_issues + local_issues))
        contradictions = contradictions[:MAX_CONTRADICTIONS]

        summary = ''
        drivers = []
        if summary_data is not None:
            summary = str(summary_data.get('summary') or '')
            drivers = self._clean_drivers(summary_data.get('topDrivers'))

        return {
            'ok': True,
            'summary': summary,
            'contradictions': contradictions,
            'topDrivers': drivers,
        }

    def get_or_generate_for_user(self, uid):
        """
        Insights stored on results/{uid}, regenerated only when the answers
        hash or INSIGHTS_VERSION changed since they were written.
        """
        answers = normalize_answers(answer_repository.load(uid))
        current_hash = answers_hash(answers)
        version = settings.INSIGHTS_VERSION

        try:
            result = db.get_user_result(uid) or {}
        except Exception as e:
            logger.warning(f"Could not load result for {uid}: {e}")
            result = {}

        if result.get('ai_answers_hash') == current_hash and result.get('ai_version') == version:
            return {
                'ok': True,
                'cached': True,
                'summary': result.get('ai_summary', ''),
                'contradictions': result.get('ai_contradictions', []),
                'topDrivers': result.get('ai_top_drivers', []),
            }

        insights = self.generate_insights(answers)
        try:
            db.save_result_insights(uid, insights, current_hash, version)
        except Exception as e:
            logger.error(f"Saving insights for {uid} failed: {e}")

        return {**insights, 'cached': False}
