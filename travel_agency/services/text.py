import re
import secrets
import string
import unicodedata

CODE_ALPHABET = string.digits + string.ascii_uppercase


def slugify(value: str) -> str:
    """'Férias em Gramado!' -> 'ferias-em-gramado'"""
    normalized = unicodedata.normalize("NFD", value)
    ascii_only = "".join(c for c in normalized if not unicodedata.combining(c))
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_only.lower())
    return slug.strip("-")


def generate_affiliate_code(name: str) -> str:
    """Up to six letters of the first name followed by four random base36 characters."""
    first_name = slugify(name.split()[0]) if name.strip() else ""
    prefix = re.sub(r"[^a-z]", "", first_name)[:6].upper()
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(4))
    return f"{prefix}{suffix}"
