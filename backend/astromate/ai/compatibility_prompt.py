"""Prompt constants and helpers for compatibility analyses."""

from datetime import date

COMPATIBILITY_TYPES = ("friendship", "partner")

SYSTEM_PROMPT = (
    "You are a helpful and spiritual astrological assistant. "
    "Produce your output as a json exactly like the following format."
)

SAMPLE_MESSAGE = (
    "Provide an analysis of Teddy (born on Apr 21, 2003) and Blake (born on october 21st, 2003)'s "
    "relationship compatibility. List strengths, weaknesses, and tips for success."
)

# One-shot example the model is asked to mirror. Aspect objects use the
# aspect name as a key alongside "Description".
SAMPLE_RESPONSE = """
{
  "Strengths": {
    "Aspects": [
      {
        "Compatibility": "Solid",
        "Description": "As both Teddy (Taurus) and Blake (Libra) are ruled by Venus, the planet of love and beauty, they share a love for aesthetics, comfort, and harmony. This mutual appreciation can create a strong bond."
      },
      {
        "Communication": "Effective",
        "Description": "Libra's sociability and charm combined with Taurus's sincerity can lead to effective and meaningful communication. They often understand each other's needs and desires."
      },
      {
        "Balance": "Complementary",
        "Description": "Libra's intellectual and social strengths complement Taurus's grounded and practical nature. This can lead to a balanced relationship where each fills in the gaps for the other."
      }
    ]
  },
  "Weaknesses": {
    "Aspects": [
      {
        "Decision-Making": "Challenging",
        "Description": "Taurus can be stubborn while Libra is indecisive, making it difficult for them to make decisions together. This can lead to frustration and conflict."
      },
      {
        "Social Preferences": "Clashing",
        "Description": "Libra enjoys socializing and engaging in social activities, whereas Taurus may prefer a more quiet and home-centered life. This difference can cause tension."
      },
      {
        "Conflict Resolution": "Imbalance",
        "Description": "Libra tends to avoid conflict and seeks harmony, while Taurus can be unyielding and persistent during disagreements, potentially leading to unresolved issues."
      }
    ]
  },
  "Tips": [
    {
      "Tip": "Enhance Communication",
      "Description": "Open and honest communication is key. Regularly discuss any issues or concerns to prevent misunderstandings from festering."
    },
    {
      "Tip": "Find Common Ground",
      "Description": "Engage in activities that both enjoy to strengthen the bond. This could be anything from artistic endeavors to enjoying nature."
    },
    {
      "Tip": "Compromise",
      "Description": "Both should learn to compromise, balancing Taurus's persistence with Libra's need for harmony. This can help in decision-making and conflict resolution."
    }
  ]
}
""".strip()

_MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def format_birthday(value: date) -> str:
    """'2003-04-21' -> 'Apr 21, 2003' (locale independent)."""
    return f"{_MONTH_ABBR[value.month - 1]} {value.day}, {value.year}"


def build_user_prompt(
    user_name: str,
    user_birthday: date,
    partner_name: str,
    partner_birthday: date,
    compatibility_type: str,
) -> str:
    if compatibility_type not in COMPATIBILITY_TYPES:
        raise ValueError(f"compatibility_type must be one of: {', '.join(COMPATIBILITY_TYPES)}")

    return (
        f"Provide an analysis of {user_name} (born on {format_birthday(user_birthday)}) "
        f"and {partner_name} (born on {format_birthday(partner_birthday)})'s "
        f"{compatibility_type} compatibility. List strengths, weaknesses, and tips for success. "
        'Produce your output as a json, with "Strengths", "Weaknesses", and "Tips" as keys.'
    )


def build_messages(user_prompt: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": SAMPLE_MESSAGE},
        {"role": "assistant", "content": SAMPLE_RESPONSE},
        {"role": "user", "content": user_prompt},
    ]
