# FILE: faqbot/chat/prompts.py
"""
Prompt templates for the FAQ engine.

Templates use str.format; literal JSON braces are doubled.
"""

from faqbot.config import FALLBACK_ANSWER, NO_RELEVANT_FAQS

# =============================================================================
# CONTEXT EXTRACTION
# =============================================================================

EXTRACTION_SYSTEM_PROMPT = """You maintain the conversation context of an FAQ assistant.

USER CONTEXT:
- Known Facts: {facts}
- Previous Keywords: {keywords}
- Enquiry History (oldest first): {enquiries}

TASK PRIORITY:
1. Extract any newly stated personal or situational facts into updated_json as snake_case keys.
2. Correct spelling and grammar of the user question WITHOUT changing its meaning; return it as corrected_question.
3. Decide whether the question continues a topic already in the enquiry history or starts a new one.
   - New topic: set active_enquiry to a short intent phrase AND add enquiry_{{n+1}} where n is the highest existing enquiry number.
   - Existing topic: set active_enquiry to that topic. Do NOT create a new enquiry_n.

PERSONAL CONTEXT EXTRACTION RULES:
- "I have 2 kids" -> {{"child_count": 2}}
- "traveling to Tokyo" -> {{"traveling_to": "Tokyo"}}
- "my budget is $1000" -> {{"budget": 1000}}
- "I prefer vegetarian food" -> {{"dietary_preference": "vegetarian"}}
- "next Friday" -> {{"mentioned_date": "next Friday"}}

NUMERICAL UPDATES:
- Known {{"child_count": 2}} and "I have 1 more kid" -> {{"child_count": 3}}
- "actually 3 kids" -> {{"child_count": 3}}
- "total 4 kids" -> {{"child_count": 4}}

OUTPUT INSTRUCTIONS:
- keywords: important lowercase single words from the question.
- Only include facts that are new or changed in updated_json.
- Respond with a JSON object only:
{schema}"""

EXTRACTION_SCHEMA = """{
  "keywords": ["..."],
  "corrected_question": "...",
  "updated_json": {"active_enquiry": "...", "enquiry_1": "..."},
  "active_enquiry_topic": "..."
}"""

INTENT_EXTRACTION_SCHEMA = """{
  "intent": "faq" | "realtime" | "general",
  "keywords": ["..."],
  "corrected_question": "...",
  "updated_json": {"active_enquiry": "...", "enquiry_1": "..."},
  "active_enquiry_topic": "..."
}"""

INTENT_INSTRUCTIONS = """

INTENT CLASSIFICATION:
- "faq": policies, procedures, how-to, eligibility, anything an FAQ would answer.
- "realtime": live records such as availability, prices, schedules or bookings.
  Realtime collections: {collections}
- "general": greetings, small talk, or anything unrelated to the business."""

EXTRACTION_USER_TEMPLATE = """Existing JSON:
{facts}

User question:
{question}"""

# =============================================================================
# ANSWERING
# =============================================================================

ANSWER_SYSTEM_PROMPT = f"""You answer customer questions using ONLY the FAQ CONTEXT provided.

INSTRUCTIONS:
- Keep the answer to 2-3 sentences.
- End your response with a complete sentence. Before finishing, verify the final character is a period.

You ARE allowed to:
- Combine information from multiple FAQ entries
- Rephrase policies into a direct answer
- Give conditional guidance (e.g., "you may book if...", "you should check...")

You are NOT allowed to:
- Add information not present in the FAQ CONTEXT
- Use external knowledge

ONLY respond with:
"{FALLBACK_ANSWER}"
IF AND ONLY IF:
- FAQ CONTEXT is "{NO_RELEVANT_FAQS}"
"""

ANSWER_USER_TEMPLATE = """FAQ CONTEXT:
{context}

PREVIOUS CONVERSATION:
User: {last_question}
Assistant: {last_answer}

JSON CONTEXT: {facts}
CURRENT QUESTION: {question}"""

GENERAL_SYSTEM_PROMPT = """You are a friendly assistant for a travel and tours business.
Reply conversationally and briefly. Known facts about the user: {facts}"""

# =============================================================================
# REALTIME QUERY BUILDING
# =============================================================================

REALTIME_SYSTEM_PROMPT = """Translate the user's question into a database query descriptor.

AVAILABLE COLLECTIONS AND SAMPLE RECORDS:
{samples}

RULES:
- collection MUST be one of: {collections}
- filters maps a field name to a value (equality) or to an operator object:
  {{"$gt": v}}, {{"$gte": v}}, {{"$lt": v}}, {{"$lte": v}}, {{"$ne": v}}, {{"$contains": "text"}}
- sort maps a field name to "asc" or "desc"
- Only use field names that appear in the sample records.
- Known facts about the user: {facts}

Respond with a JSON object only:
{{"collection": "...", "filters": {{}}, "sort": {{}}}}"""
