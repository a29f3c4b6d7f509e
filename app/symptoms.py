"""
Keyword extraction from free-text symptoms and keyword-based doctor ranking.
"""

import re
from typing import Any, Mapping, Sequence

STOP_WORDS = frozenset([
    "the", "and", "for", "have", "has", "been", "with", "that", "this", "from", "are", "was", "were",
])

_NON_ALPHA = re.compile(r"[^a-z\s]")
_LEADING_INT = re.compile(r"^\s*(\d+)")

SPECIALITY_KEYWORDS: dict[str, list[str]] = {
    # primary care
    "General Physician": ["fever", "cold", "cough", "flu", "weakness", "fatigue", "headache", "body", "ache", "infection", "viral", "general"],
    "Family Medicine": ["checkup", "routine", "preventive", "family", "health", "screening"],

    # women's health
    "Gynecologist": ["menstrual", "pregnancy", "periods", "cramps", "pcos", "fertility", "ovary", "uterus", "vaginal"],
    "Obstetrician": ["pregnancy", "prenatal", "delivery", "childbirth", "cesarean", "labor", "fetal"],

    # skin
    "Dermatologist": ["skin", "rash", "acne", "eczema", "allergy", "itching", "hair", "nail", "psoriasis", "fungal", "pigmentation"],
    "Cosmetologist": ["beauty", "aesthetic", "anti-aging", "botox", "filler", "laser", "cosmetic"],

    # children
    "Pediatrician": ["child", "baby", "infant", "vaccination", "growth", "kids", "toddler", "developmental"],
    "Neonatologist": ["newborn", "premature", "neonatal", "nicu", "birth"],

    # brain and nerves
    "Neurologist": ["migraine", "headache", "seizure", "numbness", "memory", "dizziness", "nerve", "paralysis", "stroke", "tremor", "parkinson"],
    "Neurosurgeon": ["brain", "tumor", "spine", "surgery", "disc", "herniated"],
    "Psychiatrist": ["anxiety", "depression", "stress", "mental", "bipolar", "schizophrenia", "ocd", "ptsd", "panic"],
    "Psychologist": ["counseling", "therapy", "behavioral", "cognitive", "emotional", "trauma"],

    # heart and blood vessels
    "Cardiologist": ["heart", "chest", "blood pressure", "palpitation", "cholesterol", "cardiac", "ecg", "hypertension"],
    "Cardiac Surgeon": ["bypass", "valve", "heart surgery", "angioplasty", "stent"],
    "Vascular Surgeon": ["vein", "artery", "varicose", "circulation", "dvt", "peripheral"],

    # digestive
    "Gastroenterologist": ["stomach", "digestion", "acidity", "constipation", "diarrhea", "liver", "nausea", "ibs", "ulcer", "reflux", "gerd"],
    "Hepatologist": ["liver", "hepatitis", "cirrhosis", "jaundice", "fatty liver"],

    # bones and joints
    "Orthopedic": ["bone", "joint", "fracture", "knee", "back", "spine", "muscle", "arthritis", "shoulder", "hip", "ligament"],
    "Rheumatologist": ["arthritis", "lupus", "autoimmune", "joint pain", "inflammation", "fibromyalgia"],
    "Physiotherapist": ["rehabilitation", "physical therapy", "mobility", "exercise", "recovery", "pain management"],
    "Sports Medicine": ["sports injury", "athlete", "sprain", "strain", "performance"],

    # eyes
    "Ophthalmologist": ["eye", "vision", "glasses", "cataract", "glaucoma", "retina", "lasik", "cornea"],
    "Optometrist": ["eye exam", "prescription", "contact lens", "vision test"],

    # ear, nose and throat
    "ENT Specialist": ["ear", "nose", "throat", "hearing", "sinus", "tonsil", "snoring", "vertigo", "nasal"],
    "Audiologist": ["hearing loss", "hearing aid", "tinnitus", "deaf"],

    # dental
    "Dentist": ["teeth", "dental", "gum", "cavity", "tooth", "mouth", "oral", "cleaning"],
    "Orthodontist": ["braces", "alignment", "crooked", "invisalign", "jaw"],
    "Oral Surgeon": ["wisdom teeth", "extraction", "implant", "jaw surgery"],

    # lungs
    "Pulmonologist": ["lung", "breathing", "asthma", "copd", "pneumonia", "respiratory", "bronchitis", "shortness of breath"],
    "Allergist": ["allergy", "allergic", "hay fever", "hives", "anaphylaxis", "food allergy"],

    # kidneys and urinary tract
    "Nephrologist": ["kidney", "renal", "dialysis", "creatinine", "kidney stone"],
    "Urologist": ["urinary", "bladder", "prostate", "urine", "uti", "erectile", "incontinence"],

    # hormones and metabolism
    "Endocrinologist": ["hormone", "thyroid", "pituitary", "adrenal", "metabolism", "growth hormone"],
    "Diabetologist": ["diabetes", "sugar", "insulin", "glucose", "blood sugar", "hba1c"],

    # cancer
    "Oncologist": ["cancer", "tumor", "chemotherapy", "malignant", "biopsy", "oncology"],
    "Radiation Oncologist": ["radiation", "radiotherapy", "cancer treatment"],

    # surgery
    "General Surgeon": ["surgery", "hernia", "appendix", "gallbladder", "operation"],
    "Plastic Surgeon": ["reconstruction", "cosmetic surgery", "burn", "scar"],
    "Laparoscopic Surgeon": ["minimally invasive", "keyhole", "laparoscopy"],

    # other specialists
    "Anesthesiologist": ["anesthesia", "pain block", "sedation"],
    "Infectious Disease": ["infection", "virus", "bacteria", "hiv", "tropical", "tb", "tuberculosis"],
    "Geriatrician": ["elderly", "aging", "senior", "old age", "dementia", "alzheimer"],
    "Hematologist": ["blood", "anemia", "clotting", "leukemia", "platelet", "hemoglobin"],
    "Immunologist": ["immune", "autoimmune", "immunodeficiency", "vaccination"],

    # alternative medicine
    "Ayurveda": ["ayurvedic", "natural", "herbal", "traditional", "holistic"],
    "Homeopathy": ["homeopathic", "alternative", "natural remedy"],

    # nutrition
    "Dietitian": ["diet", "nutrition", "weight", "obesity", "eating", "meal plan"],
    "Nutritionist": ["supplements", "vitamins", "minerals", "healthy eating", "weight management"],
}


def extract_keywords(symptoms: str) -> list[str]:
    """
    Lower-cased alphabetic words longer than three letters, minus stop words.

    Order and duplicates are kept: "can't" becomes "cant", "3 days" loses
    the number.
    """
    cleaned = _NON_ALPHA.sub("", (symptoms or "").lower())
    return [w for w in cleaned.split() if len(w) > 3 and w not in STOP_WORDS]


def experience_years(value: Any) -> int:
    """'15', '5 years', 7 -> leading integer; anything else -> 0."""
    if isinstance(value, (int, float)):
        return int(value)
    match = _LEADING_INT.match(str(value or ""))
    return int(match.group(1)) if match else 0


def match_score(doctor: Mapping[str, Any], keywords: Sequence[str]) -> float:
    """
    Relevance of one doctor to the extracted keywords. Unbounded, only
    meaningful for ranking.

    Per keyword: exact hit in the doctor's keyword list +10, otherwise a
    substring hit there +7; contained in the speciality +8; contained in
    the about text +3. Then rating x 2 and up to 10 points of experience.
    """
    doctor_keywords = [k.lower() for k in (doctor.get("keywords") or [])]
    speciality = (doctor.get("speciality") or "").lower()
    about = (doctor.get("about") or "").lower()

    score = 0.0
    for keyword in keywords:
        if keyword in doctor_keywords:
            score += 10
        elif any(keyword in dk for dk in doctor_keywords):
            score += 7
        if keyword in speciality:
            score += 8
        if keyword in about:
            score += 3

    score += (doctor.get("rating") or 0) * 2
    score += min(experience_years(doctor.get("experience")), 10)
    return score


def matches_any(doctor: Mapping[str, Any], keywords: Sequence[str]) -> bool:
    speciality = (doctor.get("speciality") or "").lower()
    about = (doctor.get("about") or "").lower()
    doctor_keywords = [k.lower() for k in (doctor.get("keywords") or [])]
    return any(
        k in speciality or k in about or k in doctor_keywords
        for k in keywords
    )


def rank_doctors(
    doctors: Sequence[Mapping[str, Any]], keywords: Sequence[str], limit: int = 5
) -> list[dict]:
    """
    Doctors annotated with matchScore, best match first.

    With no keywords this is simply the top-rated doctors. Otherwise only
    doctors with a speciality, about-text or keyword hit are kept.
    """
    if not keywords:
        scored = [{**d, "match_score": match_score(d, keywords)} for d in doctors]
        scored.sort(key=lambda d: d.get("rating") or 0, reverse=True)
        return scored[:limit]

    candidates = [d for d in doctors if matches_any(d, keywords)]
    scored = [{**d, "match_score": match_score(d, keywords)} for d in candidates]
    scored.sort(key=lambda d: d["match_score"], reverse=True)
    return scored[:limit]
