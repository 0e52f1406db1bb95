"""
Pustak - Prompt Templates & Language Constants
===============================================
Centralised prompt management for the answer generator.  All prompts
live here so they can be reviewed and versioned independently of
application logic.

Exports
-------
LANGUAGE_NAMES, SYSTEM_PROMPT, RAG_PROMPT_TEMPLATE,
NO_CONTEXT_RESPONSES, LIVENESS_MESSAGE.
"""

from pustak.src.core.models import Language

LIVENESS_MESSAGE: str = "Pustak book chatbot is running"


# ══════════════════════════════════════════════════════════════════════
#  LANGUAGE DISPLAY NAMES
# ══════════════════════════════════════════════════════════════════════
# English name, then the endonym in its own script.

LANGUAGE_NAMES: dict[Language, str] = {
    Language.TAMIL: "Tamil (தமிழ்)",
    Language.ENGLISH: "English",
    Language.HINDI: "Hindi (हिन्दी)",
    Language.TELUGU: "Telugu (తెలుగు)",
    Language.MALAYALAM: "Malayalam (മലയാളം)",
    Language.GERMAN: "German (Deutsch)",
}


# ══════════════════════════════════════════════════════════════════════
#  NO-CONTEXT FALLBACK
# ══════════════════════════════════════════════════════════════════════
# Returned without an LLM call when the language has nothing to retrieve.

NO_CONTEXT_RESPONSES: dict[Language, str] = {
    Language.TAMIL: "மன்னிக்கவும், இந்தக் கேள்விக்கான பதில் புத்தகத்தில் கிடைக்கவில்லை.",
    Language.ENGLISH: "Sorry, I could not find the answer to that question in the book.",
    Language.HINDI: "क्षमा करें, इस प्रश्न का उत्तर पुस्तक में नहीं मिला।",
    Language.TELUGU: "క్షమించండి, ఈ ప్రశ్నకు సమాధానం పుస్తకంలో కనుగొనబడలేదు.",
    Language.MALAYALAM: "ക്ഷമിക്കണം, ഈ ചോദ്യത്തിനുള്ള ഉത്തരം പുസ്തകത്തിൽ കണ്ടെത്താനായില്ല.",
    Language.GERMAN: "Entschuldigung, die Antwort auf diese Frage konnte im Buch nicht gefunden werden.",
}


# ══════════════════════════════════════════════════════════════════════
#  SYSTEM PROMPT
# ══════════════════════════════════════════════════════════════════════

SYSTEM_PROMPT: str = """You are a helpful reading assistant for a single book.
You answer readers' questions using ONLY the book excerpts provided in the context.

═══ Core rules ═══
1. Answer strictly from the CONTEXT. Do not use outside knowledge.
2. If the context does not contain the answer, say so politely and briefly,
   for example: "{no_context_reply}"
   Never invent names, dates, quotes, or events.
3. Reply ONLY in {language_name}, whatever language the question is written in.
4. Keep answers concise: at most 3 short paragraphs unless the reader asks for more.
5. The conversation history is for resolving follow-up questions only;
   facts must still come from the CONTEXT."""


# ══════════════════════════════════════════════════════════════════════
#  RAG PROMPT TEMPLATE
# ══════════════════════════════════════════════════════════════════════

RAG_PROMPT_TEMPLATE: str = """══════════════════════════════════════════
CONTEXT (book excerpts, most relevant first)
══════════════════════════════════════════
{context}

══════════════════════════════════════════
QUESTION
══════════════════════════════════════════
{question}

──────────────────────────────────────────
Answer in {language_name} using only the context above.
If the context is insufficient, state that explicitly.
"""
