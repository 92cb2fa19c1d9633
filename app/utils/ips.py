import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from ..core.config import settings
from ..schemas import PaymentRecord


MAX_NAME_BLOCK_LENGTH = 70
MAX_PURPOSE_LENGTH = 35
ACCOUNT_LENGTH = 18
DEFAULT_PAYMENT_CODE = 189
PAYMENT_CODE_OFFSET = 100
CHECKSUM_MODEL = "97"

# Unsigned, "." as decimal separator, no grouping
CANONICAL_AMOUNT = re.compile(r"[0-9]+(\.[0-9]*)?|\.[0-9]+")

CYRILLIC_TO_LATIN = {
    'а': 'a', 'б': 'b', 'в': 'v', 'г': 'g', 'д': 'd', 'ђ': 'đ',
    'е': 'e', 'ж': 'ž', 'з': 'z', 'и': 'i', 'ј': 'j', 'к': 'k',
    'л': 'l', 'љ': 'lj', 'м': 'm', 'н': 'n', 'њ': 'nj', 'о': 'o',
    'п': 'p', 'р': 'r', 'с': 's', 'т': 't', 'ћ': 'ć', 'у': 'u',
    'ф': 'f', 'х': 'h', 'ц': 'c', 'ч': 'č', 'џ': 'dž', 'ш': 'š',
    'А': 'A', 'Б': 'B', 'В': 'V', 'Г': 'G', 'Д': 'D', 'Ђ': 'Đ',
    'Е': 'E', 'Ж': 'Ž', 'З': 'Z', 'И': 'I', 'Ј': 'J', 'К': 'K',
    'Л': 'L', 'Љ': 'Lj', 'М': 'M', 'Н': 'N', 'Њ': 'Nj', 'О': 'O',
    'П': 'P', 'Р': 'R', 'С': 'S', 'Т': 'T', 'Ћ': 'Ć', 'У': 'U',
    'Ф': 'F', 'Х': 'H', 'Ц': 'C', 'Ч': 'Č', 'Џ': 'Dž', 'Ш': 'Š',
}

# All-caps forms of the capital digraph letters
CYRILLIC_DIGRAPH_UPPER = {'Љ': 'LJ', 'Њ': 'NJ', 'Џ': 'DŽ'}


def _in_upper_context(text: str, index: int) -> bool:
    next_char = text[index + 1] if index + 1 < len(text) else ""
    if next_char.isupper():
        return True
    prev_char = text[index - 1] if index > 0 else ""
    return not next_char.islower() and prev_char.isupper()


def transliterate(text: str) -> str:
    """Transliterate Serbian Cyrillic to Latin script, leaving other characters as they are."""
    if not text:
        return ""

    result = []
    for index, char in enumerate(text):
        if char in CYRILLIC_DIGRAPH_UPPER and _in_upper_context(text, index):
            result.append(CYRILLIC_DIGRAPH_UPPER[char])
        else:
            result.append(CYRILLIC_TO_LATIN.get(char, char))
    return "".join(result)


def normalize_account(raw: str) -> str:
    """
    Normalize a domestic bank account to the 18 digit IPS form.

    The first three digits (bank code) are kept as typed and the rest is
    left-padded with zeros to 15 digits. Anything beyond 18 digits is cut off.
    """
    cleaned = re.sub(r"[^0-9]", "", raw or "")
    if not cleaned:
        return ""

    bank_code = cleaned[:3]
    rest = cleaned[3:].rjust(15, "0")
    return (bank_code + rest)[:ACCOUNT_LENGTH]


def format_account_display(raw: str) -> str:
    """Format an account as XXX-XXXXXXXXXXXXX-XX for printing on the slip."""
    cleaned = re.sub(r"[^0-9]", "", raw or "")
    if len(cleaned) <= 3:
        return cleaned
    if len(cleaned) <= 16:
        return f"{cleaned[:3]}-{cleaned[3:]}"
    return f"{cleaned[:3]}-{cleaned[3:16]}-{cleaned[16:]}"


def canonicalize_amount(value: str) -> str:
    """
    Convert a typed or display-formatted amount to the canonical form.

    "1.234,56" -> "1234.56". A value with no comma and at most one dot is
    already canonical and comes back unchanged.
    """
    cleaned = (value or "").strip()
    if "," in cleaned:
        return cleaned.replace(".", "").replace(",", ".", 1)
    if cleaned.count(".") > 1:
        return cleaned.replace(".", "")
    return cleaned


def canonicalize_display_amount(value: str) -> str:
    """
    Convert an amount typed in the display format to the canonical form.

    Every "." is a thousands separator here: "1.234" -> "1234".
    """
    return (value or "").strip().replace(".", "").replace(",", ".", 1)


def _parse_amount(canonical: str) -> Optional[Decimal]:
    text = (canonical or "").strip()
    if not CANONICAL_AMOUNT.fullmatch(text):
        return None

    try:
        return Decimal(text).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # More digits than the decimal context can hold
        return None


def amount_to_payload(canonical: str) -> Optional[str]:
    """Format a canonical amount for the I: tag, e.g. "1234.5" -> "1234.50"."""
    amount = _parse_amount(canonical)
    if amount is None:
        return None
    return f"{amount:.2f}"


def amount_to_display(canonical: str) -> str:
    """Format a canonical amount for people, e.g. "1234.56" -> "1.234,56"."""
    amount = _parse_amount(canonical)
    if amount is None:
        return "0,00"

    integer_part, decimal_part = f"{amount:.2f}".split(".")
    grouped = f"{int(integer_part):,}".replace(",", ".")
    return f"{grouped},{decimal_part}"


def transform_payment_code(code: str) -> str:
    """Derive the electronic payment code (SF) from the base code: 189 -> 289."""
    match = re.match(r"\s*([+-]?[0-9]+)", code or "")
    base_code = int(match.group(1)) if match else 0
    # Zero counts as missing, like an empty field
    if not base_code:
        base_code = DEFAULT_PAYMENT_CODE
    return str(base_code + PAYMENT_CODE_OFFSET)


def letter_to_number(text: str) -> str:
    """Replace letters A-Z with 10-35. Digits and anything else stay in place."""
    return "".join(
        str(ord(char) - ord("A") + 10) if "A" <= char <= "Z" else char
        for char in text
    )


def calculate_model97(reference: str) -> str:
    """
    Prefix a reference number with its model 97 check digits.

    ISO 7064 MOD 97-10 over the reference with letters expanded to two
    digits each: check = (98 - (N * 100) mod 97) mod 97.

    Returns:
        Two check digits followed by the cleaned reference, "00" followed by
        the cleaned reference when it cannot be read as a number, or an empty
        string for an empty reference.
    """
    clean = re.sub(r"[\s-]", "", reference or "").upper()
    if not clean:
        return ""

    numeric_string = letter_to_number(clean)
    if not (numeric_string.isascii() and numeric_string.isdigit()):
        return "00" + clean

    check_digits = (98 - (int(numeric_string) * 100) % 97) % 97
    return f"{check_digits:02d}{clean}"


def _text_block(name: str, address: str, city: str) -> str:
    block = transliterate(name)
    if address:
        block += "\n" + transliterate(address)
    if city:
        block += "\n" + transliterate(city)
    return block[:MAX_NAME_BLOCK_LENGTH]


def generate_ips_string(record: PaymentRecord) -> Optional[str]:
    """
    Build the NBS IPS QR payload for a payment record.

    Returns None while the record is incomplete (no account, amount or
    receiver name) or when the account or amount cannot be encoded.
    """
    if not record.receiver_account or not record.amount or not record.receiver_name:
        return None

    account = normalize_account(record.receiver_account)
    if len(account) != ACCOUNT_LENGTH:
        return None

    amount = amount_to_payload(canonicalize_amount(record.amount))
    if amount is None:
        return None

    receiver = _text_block(record.receiver_name, record.receiver_address, record.receiver_city)
    payer = _text_block(record.payer_name, record.payer_address, record.payer_city)
    code = transform_payment_code(record.payment_code)
    purpose = transliterate(record.purpose)[:MAX_PURPOSE_LENGTH]
    currency = record.currency or settings.default_currency

    qr_string = (
        f"K:PR|V:01|C:1|R:{account}|N:{receiver}|I:{currency}{amount}"
        f"|P:{payer}|SF:{code}|S:{purpose}"
    )

    reference = (record.reference or "").strip()
    if reference:
        if record.model == CHECKSUM_MODEL:
            model_prefix = CHECKSUM_MODEL
            reference = calculate_model97(reference)
        else:
            model_prefix = record.model or "00"
        qr_string += f"|RO:{model_prefix}{reference}"

    return qr_string
