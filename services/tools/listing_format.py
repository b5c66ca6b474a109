"""Formatting helpers shared by the backend-backed tools."""

import json

ROOM_FIELDS = (
    "id", "title", "description", "price", "location", "latitude", "longitude",
    "roomSize", "numBedrooms", "numBathrooms", "availableFrom", "isRoomAvailable",
    "ownerId", "city", "district", "ward", "street", "addressDetails", "ownerName", "imageUrls",
)

OWNER_FIELDS = (
    "id", "fullName", "phone", "gender", "dob", "bio", "createdAt", "avatarUrl",
    "job", "isVerified", "verificationDate", "rooms",
)


def pick(data: dict, fields: tuple[str, ...]) -> dict:
    return {field: data.get(field) for field in fields}


def pick_room(room: dict) -> dict:
    return pick(room, ROOM_FIELDS)


def to_json(data) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2, default=str)


def to_number(value) -> float:
    """Parse a numeric field that may arrive as a string; unparsable values count as 0."""
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def format_vnd(amount: float) -> str:
    if not amount:
        return "0 VND"
    return f"{amount:,.0f}".replace(",", ".") + " VND"
