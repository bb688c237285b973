DOCUMENT_ANALYSIS_PROMPT = """You are a presales analyst reviewing a project scope document.

Decide whether the document already states effort figures in man-hours or man-days
(for example an effort table or per-feature hour estimates).

SCOPE DOCUMENT:
{document_text}

OUTPUT FORMAT (JSON only, no markdown):
{{"hasManhour": true|false, "notes": "short explanation of where the figures are, or why none were found"}}"""


ITEM_GENERATION_INTERPRETIVE = (
    "You are a senior business analyst reviewing the scope document below. Identify additional "
    "backlog items that should be considered for the sections marked as AI-Generated."
)

ITEM_GENERATION_STRICT = (
    "You are a meticulous business analyst reviewing the scope document below. Translate every "
    "explicitly described requirement into backlog items for the sections marked as AI-Generated. "
    "Do not invent new scope beyond what the document states."
)

ITEM_GENERATION_PROMPT = """{instructions} Extract only in-scope backlog items. Prefer merging trivial UI fragments that do not materially change estimates. If a function is clearly reusable from references, include a [REUSE] tag in itemDetail. {language_instruction}{reference_instruction}

PROJECT CONTEXT:
{context_json}

SCOPE DOCUMENT:
{document_text}

OUTPUT FORMAT (JSON only, no markdown):
{{"items": [{{"sectionName": "string", "itemName": "string", "itemDetail": "string"}}]}}"""


EFFORT_ESTIMATION_INTERPRETIVE = (
    "You are an experienced software project estimator. Review every template item provided in "
    "the context and decide if it is needed for the scope document."
)

EFFORT_ESTIMATION_STRICT = (
    "You are an experienced software project estimator. The backlog items were transcribed directly "
    "from the scope document. Evaluate each item exactly as written and determine whether it remains "
    "in scope for this project."
)

EFFORT_ESTIMATION_PROMPT = """{instructions}{reference_instruction} Keep estimates conservative and auditable. {language_instruction}

Do not calculate a single total effort and apply it to every column. For each item:
1. Review itemName and itemDetail to understand the nature and scope of the work.
2. Determine which estimation columns correspond to the roles actually involved.
3. Estimate the total hours from the item's complexity and distribute them across those columns.
4. Assign 0 hours to every column without an involved role.

PROJECT CONTEXT:
{context_json}

SCOPE DOCUMENT:
{document_text}

OUTPUT FORMAT (JSON only, no markdown, numbers in hours):
{{"items": [{{"itemId": "string", "isNeeded": true, "estimates": {{"<column>": 0}}}}]}}"""


LANGUAGE_INSTRUCTIONS = {
    "English": "Write all text in English.",
    "Indonesian": "Write all text in Bahasa Indonesia.",
}
