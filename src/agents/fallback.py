"""Canned replies used when the language model cannot be reached."""

from __future__ import annotations

DISCLAIMER = (
    "This is not a replacement for professional medical advice. "
    "Please consult a healthcare provider."
)

DEFAULT_FALLBACK = (
    "I'm sorry, I can't provide detailed guidance right now. "
    "If your symptoms are severe or getting worse, please contact a healthcare provider "
    "or call emergency services. " + DISCLAIMER
)

# Checked in order; the first keyword found in the utterance wins.
FALLBACK_ADVICE: tuple[tuple[str, str], ...] = (
    (
        "chest pain",
        "Chest pain can be serious. If it is severe, spreading to your arm or jaw, "
        "or comes with shortness of breath, call emergency services right away. " + DISCLAIMER,
    ),
    (
        "breath",
        "Difficulty breathing needs prompt attention. If it is sudden or severe, "
        "call emergency services immediately. " + DISCLAIMER,
    ),
    (
        "headache",
        "For a headache, rest in a quiet, dark room, drink plenty of water and consider "
        "an over-the-counter pain reliever. Seek care if it is sudden, severe or comes "
        "with fever, stiff neck or confusion. " + DISCLAIMER,
    ),
    (
        "fever",
        "For a fever, rest, stay hydrated and consider a fever reducer. Seek care if it "
        "is above 39.4 degrees Celsius or lasts more than three days. " + DISCLAIMER,
    ),
    (
        "sore throat",
        "For a sore throat, warm fluids, throat lozenges and salt water gargles can help. "
        "See a provider if it lasts more than a week or swallowing is difficult. " + DISCLAIMER,
    ),
    (
        "cough",
        "For a cough, rest, stay hydrated and try honey in warm water. See a provider if "
        "it lasts more than three weeks or you cough up blood. " + DISCLAIMER,
    ),
    (
        "stomach",
        "For an upset stomach, sip clear fluids and eat bland foods. Seek care if the pain "
        "is severe or you cannot keep fluids down. " + DISCLAIMER,
    ),
    (
        "nausea",
        "For nausea, sip clear fluids slowly and avoid heavy or greasy food. Seek care if "
        "you cannot keep fluids down for a day. " + DISCLAIMER,
    ),
    (
        "dizz",
        "If you feel dizzy, sit or lie down until it passes and drink some water. Seek care "
        "if you faint or the dizziness keeps coming back. " + DISCLAIMER,
    ),
    (
        "rash",
        "For a rash, keep the area clean and avoid scratching. Seek care if it spreads "
        "quickly or comes with fever or swelling. " + DISCLAIMER,
    ),
)


def select_fallback(utterance: str) -> str:
    """Pick a deterministic reply by case-insensitive keyword match."""

    lowered = utterance.lower()
    for keyword, advice in FALLBACK_ADVICE:
        if keyword in lowered:
            return advice
    return DEFAULT_FALLBACK
