"""vCard 3.0 rendering for published cards."""
from __future__ import annotations

from typing import Any, Mapping

from cardhub.core.utils import absolute_url, card_share_url

SOCIAL_LABELS = {
    "linkedin": "LinkedIn",
    "twitter": "Twitter",
    "facebook": "Facebook",
    "instagram": "Instagram",
}


def _escape(value: Any) -> str:
    text = str(value or "")
    return (
        text.replace("\\", "\\\\")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
        .replace(",", "\\,")
        .replace(";", "\\;")
    )


def _fold(line: str, width: int = 75) -> str:
    # RFC 2425 folding: CRLF followed by a single space, measured in UTF-8 octets
    if len(line.encode("utf-8")) <= width:
        return line
    chunks: list[str] = []
    current, size, limit = "", 0, width
    for char in line:
        octets = len(char.encode("utf-8"))
        if size + octets > limit:
            chunks.append(current)
            # continuation lines spend one octet on the leading space
            current, size, limit = "", 0, width - 1
        current += char
        size += octets
    chunks.append(current)
    return "\r\n ".join(chunks)


def _names(card: Mapping[str, Any]) -> tuple[str, str, str]:
    first = (card.get("firstName") or "").strip()
    last = (card.get("lastName") or "").strip()
    full = (card.get("fullName") or "").strip() or " ".join(p for p in (first, last) if p)
    if full and not (first or last):
        head, _, tail = full.rpartition(" ")
        first, last = (head, tail) if head else (tail, "")
    return first, last, full


def _photo_line(photo: str) -> str:
    if photo.startswith("data:") and ";base64," in photo:
        header, b64 = photo.split(";base64,", 1)
        typ = header.split("/", 1)[-1].upper() or "JPEG"
        return f"PHOTO;ENCODING=b;TYPE={typ}:{b64}"
    if photo.startswith("http://") or photo.startswith("https://") or photo.startswith("/"):
        return f"PHOTO;VALUE=URI:{absolute_url(photo)}"
    return f"PHOTO;ENCODING=b;TYPE=JPEG:{photo}"


def build_vcard(card: Mapping[str, Any]) -> str:
    """Render the contact fields of a card as a CRLF-terminated vCard 3.0 document."""
    first, last, full = _names(card)
    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"N:{_escape(last)};{_escape(first)};;;",
        f"FN:{_escape(full or card.get('slug', ''))}",
    ]
    if card.get("organization"):
        lines.append(f"ORG:{_escape(card['organization'])}")
    if card.get("title"):
        lines.append(f"TITLE:{_escape(card['title'])}")
    if card.get("phone"):
        lines.append(f"TEL;TYPE=CELL:{_escape(card['phone'])}")
    if card.get("email"):
        lines.append(f"EMAIL;TYPE=INTERNET:{_escape(card['email'])}")
    if card.get("website"):
        lines.append(f"URL:{_escape(card['website'])}")
    social = card.get("socialMedia") or {}
    if isinstance(social, Mapping):
        for key, label in SOCIAL_LABELS.items():
            if social.get(key):
                lines.append(f"URL;TYPE={label}:{_escape(social[key])}")
    address = card.get("address")
    if isinstance(address, Mapping) and any(address.values()):
        parts = [address.get(k) for k in ("street", "city", "state", "postalCode", "country")]
        lines.append("ADR;TYPE=WORK:;;" + ";".join(_escape(p) for p in parts))
    photo = (card.get("photo") or "").strip() if isinstance(card.get("photo"), str) else ""
    if photo:
        lines.append(_photo_line(photo))
    if card.get("notes"):
        lines.append(f"NOTE:{_escape(card['notes'])}")
    if card.get("slug"):
        lines.append(f"URL;TYPE=Card:{card_share_url(card['slug'])}")
    lines.append("END:VCARD")
    return "\r\n".join(_fold(line) for line in lines) + "\r\n"
