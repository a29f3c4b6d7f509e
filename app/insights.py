from typing import Sequence

from app.symptoms import SPECIALITY_KEYWORDS, extract_keywords

HIGH_SEVERITY = ["severe", "emergency", "bleeding", "unconscious", "chest pain", "breathing"]
MEDIUM_SEVERITY = ["fever", "pain", "infection", "swelling", "persistent"]

RECOMMENDATIONS = {
    "high": (
        "Your symptoms suggest you should seek immediate medical attention. "
        "Please visit an emergency room or call emergency services."
    ),
    "medium": (
        "We recommend scheduling an appointment with a specialist soon. "
        "In the meantime, rest and stay hydrated."
    ),
    "low": (
        "Your symptoms appear mild. "
        "Consider booking a consultation if they persist for more than a few days."
    ),
}


def suggest_specialities(keywords: Sequence[str]) -> list[str]:
    """
    Specialities whose symptom words overlap a keyword (substring either way),
    in the order the keywords first hit them.
    """
    suggested: dict[str, None] = {}
    for keyword in keywords:
        for speciality, symptom_words in SPECIALITY_KEYWORDS.items():
            if any(keyword in sw or sw in keyword for sw in symptom_words):
                suggested.setdefault(speciality)
    return list(suggested)


def assess_severity(keywords: Sequence[str]) -> str:
    if any(hk in k for k in keywords for hk in HIGH_SEVERITY):
        return "high"
    if any(mk in k for k in keywords for mk in MEDIUM_SEVERITY):
        return "medium"
    return "low"


def health_insights(symptoms: str) -> dict:
    keywords = extract_keywords(symptoms)
    severity = assess_severity(keywords)
    return {
        "extracted_keywords": keywords,
        "suggested_specialities": suggest_specialities(keywords),
        "severity": severity,
        "recommendation": RECOMMENDATIONS[severity],
    }
