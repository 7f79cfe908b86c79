# utils/expense_parsing_utils.py
import logging
import re
from typing import Any, Optional, Tuple

from spacy.tokens import Doc

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = "$€£"
SIMPLE_EXPENSE_PATTERN = re.compile(r"^(\d+(?:\.\d{1,2})?)\s+(.+)$")
AMOUNT_FALLBACK_PATTERN = re.compile(r"([\$€£]?)\s*(\d+(?:[\.,]\d+)?)")
DESCRIPTION_MAX_LENGTH = 100


def _with_leading_currency(full_text: str, ent_text: str, start_char: int) -> str:
    """Extends an entity's text backwards to include a currency symbol spaCy left outside the entity."""
    if any(symbol in ent_text for symbol in CURRENCY_SYMBOLS):
        return ent_text
    if start_char > 0 and full_text[start_char - 1] in CURRENCY_SYMBOLS:
        return full_text[start_char - 1] + ent_text
    if start_char > 1 and full_text[start_char - 2] in CURRENCY_SYMBOLS and full_text[start_char - 1].isspace():
        return full_text[start_char - 2:start_char] + ent_text
    return ent_text


def _positive_number(raw: str) -> Optional[float]:
    cleaned = raw
    for symbol in CURRENCY_SYMBOLS:
        cleaned = cleaned.replace(symbol, "")
    cleaned = cleaned.replace(",", "").strip()
    try:
        value = float(cleaned)
    except ValueError:
        return None
    return value if value > 0 else None


def extract_amount_from_text(full_text: str, doc: Doc) -> Tuple[Optional[float], str]:
    """
    Finds the expense amount: spaCy MONEY entities first, then CARDINAL entities
    that are not part of a DATE, then a plain regex.
    Returns (amount, text_to_remove) or (None, "") when nothing usable is found.
    """
    date_spans = [(ent.start_char, ent.end_char) for ent in doc.ents if ent.label_ == "DATE"]

    for label in ("MONEY", "CARDINAL"):
        for ent in doc.ents:
            if ent.label_ != label:
                continue
            if label == "CARDINAL" and any(start <= ent.start_char and ent.end_char <= end for start, end in date_spans):
                logger.info(f"CARDINAL '{ent.text}' is part of a date, skipping.")
                continue
            amount = _positive_number(ent.text)
            if amount is None:
                logger.warning(f"Could not use {label} entity '{ent.text}' as an amount.")
                continue
            removal_text = _with_leading_currency(full_text, ent.text, ent.start_char)
            logger.info(f"Amount from {label}: {amount}, text for removal: '{removal_text}'")
            return amount, removal_text

    money_match = AMOUNT_FALLBACK_PATTERN.search(full_text)
    if money_match:
        amount = _positive_number(money_match.group(2))
        if amount is not None:
            logger.info(f"Amount from regex fallback: {amount}, text for removal: '{money_match.group(0).strip()}'")
            return amount, money_match.group(0).strip()

    return None, ""


def clean_description(full_text: str, amount_text_to_remove: str) -> str:
    description = full_text
    if amount_text_to_remove:
        description = re.sub(re.escape(amount_text_to_remove), "", description, count=1, flags=re.IGNORECASE)
    description = re.sub(r"\s+", " ", description).strip()
    description = re.sub(r"^(?:(?:on|for|at|spent|buy|bought|get|got|paid)\s+)+", "", description, flags=re.IGNORECASE).strip()
    description = re.sub(r"\s+(on|for|at)$", "", description, flags=re.IGNORECASE).strip()
    if len(description) > DESCRIPTION_MAX_LENGTH:
        description = description[:DESCRIPTION_MAX_LENGTH - 3] + "..."
    return description


def parse_expense_text(text: str, nlp_processor: Any) -> Optional[Tuple[float, str]]:
    """
    Parses "<amount> <description>" (e.g. "15 coffee").
    Free-form text such as "spent $12.50 on lunch" falls back to entity
    extraction. Returns None when no positive amount and description are found.
    """
    text = (text or "").strip()
    if not text:
        return None

    simple_match = SIMPLE_EXPENSE_PATTERN.match(text)
    if simple_match:
        amount = float(simple_match.group(1))
        return (amount, simple_match.group(2).strip()) if amount > 0 else None

    if nlp_processor is None:
        return None

    doc = nlp_processor(text)
    amount, amount_text = extract_amount_from_text(text, doc)
    if amount is None:
        logger.info(f"No amount found in expense text '{text}'")
        return None

    description = clean_description(text, amount_text)
    if not description:
        logger.info(f"Amount {amount} found but no description in '{text}'")
        return None
    return amount, description
