# utils/categorization_utils.py
from typing import Dict, Optional

NOTE_CATEGORY_EMOJI: Dict[str, str] = {
    "link": "🔗",
    "task": "✅",
    "idea": "💡",
    "general": "📝",
}

NOTE_CATEGORY_KEYWORDS = {
    "task": ["todo", "task"],
    "idea": ["idea", "think"],
}


def categorize_note(content: str) -> str:
    """Keyword-based note category: link, task, idea or general."""
    if "http" in content or "www." in content:
        return "link"
    content_lower = content.lower()
    for category, keywords in NOTE_CATEGORY_KEYWORDS.items():
        if any(keyword in content_lower for keyword in keywords):
            return category
    return "general"


def note_emoji(category: Optional[str]) -> str:
    return NOTE_CATEGORY_EMOJI.get(category or "general", NOTE_CATEGORY_EMOJI["general"])
