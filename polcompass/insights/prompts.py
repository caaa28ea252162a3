CONTRADICTIONS_PROMPT_TEMPLATE = """
You are a careful political logic checker. The input is a list of questionnaire items the user answered
(1 = Strongly Disagree .. 5 = Strongly Agree; yes/no items use 1 = No, 5 = Yes).

Find at most 3 clear logical tensions between answers. Prefer genuine contradictions over mere ideological disagreement.
Keep each item short, specific and neutral, and suggest one clarifying angle when helpful.

### ANSWERS
{items_json}

### OUTPUT FORMAT
Return ONLY valid JSON, no markdown:
{{ "contradictions": ["<plain sentence>", ...] }}
If there are none, return {{ "contradictions": [] }}.
"""

SUMMARY_PROMPT_TEMPLATE = """
You are a neutral political profile writer. Use plain English, non-judgmental, no loaded language.

Summarize the user's results in under 100 words using these axis scores (-5..5, 0 is neutral):
- Economic (negative = equality-leaning, positive = market-leaning): {economic}
- Social (negative = libertarian, positive = authoritarian): {social}
- Global (negative = internationalist, positive = sovereignty-first): {global_}
- Progress (negative = progressive, positive = traditional): {progress}

The user answered {answered_count} of {total_count} questions. If scores are missing, infer cautiously from the answers.

### ANSWERS
{items_json}

### OUTPUT FORMAT
Return ONLY valid JSON, no markdown:
{{
  "summary": "<at most 100 words, ending with one sentence naming the overall quadrant>",
  "topDrivers": [{{ "qid": "<question id>", "axis": "<axis>", "driver": "<why this answer moved the result>" }}]
}}
At most 5 topDrivers.
"""
