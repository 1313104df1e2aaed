"""Lightweight language detection and the matching reply-language instruction."""

import re

_HINGLISH_WORDS = frozenset(
    """
    kya hai hain kaise kaisa kaisi ho hoon hun mein main mujhe mujhse tum tumhe
    tumhara tumhari aap aapka aapki aapko apna apni apne yeh ye woh wo yahan
    wahan kab kahan kyun kyu kyuki isliye lekin aur nahi nahin nhi haa haan ji
    accha acha achha theek thik sahi galat bahut bohot zyada thoda thodi kuch
    sab sabhi koi kaun kar karo karna karke kiya kiye karunga karenge bolo
    batao bata sunao suno dekho samajh samjha pata maloom matlab abhi phir
    kabhi hamesha pehle baad kal aaj raat subah shaam paisa paise khana ghar
    dost yaar bhai beta beti maa papa pyaar pyar dil zindagi kaam soch socho
    lagta lagti chahiye chahte pasand acchi bura mast maza namaste namaskar
    dhanyawad shukriya alvida chalo arre haanji bilkul zaroor baat
    """.split()
)

_HINGLISH_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\bkya\s+(hai|ho|hua|kar|baat)",
        r"\bkaise\s+(ho|hai|hain)",
        r"\b(mujhe|tumhe|aapko)\s+",
        r"\bkar\s*(raha|rahi|rahe|lo|do|na)\b",
        r"\bho\s*(raha|rahi|gaya|gayi)\b",
        r"\bhai\s+na\b",
        r"\bkuch\s+(nahi|bhi|aur)\b",
        r"\bbahut\s+(accha|acha|badiya|zyada)\b",
    )
]

_SCRIPT_RANGES = (
    ("hi", re.compile(r"[\u0900-\u097F]")),
    ("ar", re.compile(r"[\u0600-\u06FF]")),
    ("zh", re.compile(r"[\u4E00-\u9FFF]")),
    ("ja", re.compile(r"[\u3040-\u30FF]")),
    ("ko", re.compile(r"[\uAC00-\uD7AF]")),
)

_ACCENTED = re.compile(r"[áéíóúñ¿¡àâêëîïôûùç]", re.IGNORECASE)

# Share of romanized Hindi words above which text is treated as Hinglish.
_HINGLISH_RATIO = 0.2


def detect_language(text: str) -> str:
    """Return a short language tag ('en', 'hi', 'ar', 'zh', 'ja', 'ko', 'es')."""
    lang, pattern = _SCRIPT_RANGES[0]
    if pattern.search(text):
        return lang

    words = [re.sub(r"[.,!?'\"]", "", w) for w in text.lower().split()]
    if words:
        hits = sum(1 for w in words if w in _HINGLISH_WORDS)
        if hits / len(words) >= _HINGLISH_RATIO:
            return "hi"
    if any(p.search(text) for p in _HINGLISH_PATTERNS):
        return "hi"

    for lang, pattern in _SCRIPT_RANGES[1:]:
        if pattern.search(text):
            return lang
    if _ACCENTED.search(text):
        return "es"
    return "en"


def language_instruction(language: str, text: str = "") -> str:
    """Instruction telling the model which language and script to reply in."""
    if language == "en":
        return "Respond in clear English only. Do not mix in Hindi words or phrases."
    if language == "hi":
        has_devanagari = bool(_SCRIPT_RANGES[0][1].search(text))
        has_roman = bool(re.search(r"[a-zA-Z]{2,}", text))
        if has_devanagari and not has_roman:
            return (
                "The user is writing in Hindi (Devanagari). Respond ONLY in "
                "Devanagari script; never write Hindi words in Roman letters."
            )
        return (
            "The user is speaking Hinglish. Reply in Hinglish: English words in "
            "Roman script, Hindi words ONLY in Devanagari script so speech "
            "synthesis can pronounce them."
        )
    return (
        f"The user is speaking in '{language}'. Always respond in the same "
        "language using its native script. Do not mix with English."
    )
