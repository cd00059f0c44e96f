"""Canonical character model and the normalizer that builds it.

``normalize_character`` accepts loosely-typed character sheets (D&D Beyond
exports, hand-written JSON, partial blobs) and never raises for any input.
Each field is resolved from an ordered list of alias keys and falls back to
a fixed default. Ability modifiers are always derived from the scores.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any

from pydantic import BaseModel, Field, computed_field

ABILITY_CODES = ("STR", "DEX", "CON", "INT", "WIS", "CHA")

ABILITY_NAMES = {
    "STR": "strength",
    "DEX": "dexterity",
    "CON": "constitution",
    "INT": "intelligence",
    "WIS": "wisdom",
    "CHA": "charisma",
}

# D&D Beyond "stats" arrays use numeric ids
DDB_STAT_IDS = {1: "STR", 2: "DEX", 3: "CON", 4: "INT", 5: "WIS", 6: "CHA"}

DEFAULT_SCORE = 10
PLACEHOLDER = "—"

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def ability_modifier(score: int) -> int:
    return math.floor((score - 10) / 2)


def slugify(value: Any) -> str:
    """Lowercase, collapse non ``[a-z0-9]`` runs to ``-``, trim hyphens.

    Empty results become ``"unnamed"``.
    """
    text = "" if value is None else str(value)
    slug = _SLUG_RE.sub("-", text.lower()).strip("-")
    return slug or "unnamed"


# ==================== Model ====================


class Identity(BaseModel):
    id: str | int | None = None
    name: str = "Unknown"
    race: str = ""
    classes: list[Any] = Field(default_factory=list)
    background: str = ""

    model_config = {"frozen": True, "populate_by_name": True}


class StatCore(BaseModel):
    """The six ability scores; ``mod`` is derived and cannot be set."""

    STR: int = DEFAULT_SCORE
    DEX: int = DEFAULT_SCORE
    CON: int = DEFAULT_SCORE
    INT: int = DEFAULT_SCORE
    WIS: int = DEFAULT_SCORE
    CHA: int = DEFAULT_SCORE

    model_config = {"frozen": True, "extra": "ignore"}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def mod(self) -> dict[str, int]:
        return {code: ability_modifier(getattr(self, code)) for code in ABILITY_CODES}


class HitPoints(BaseModel):
    max: int | None = None
    current: int | None = None
    temp: int = 0

    model_config = {"frozen": True, "populate_by_name": True}


class Combat(BaseModel):
    ac: int | None = Field(default=None, alias="AC")
    hp: HitPoints = Field(default_factory=HitPoints)
    initiative: Any = None
    speed: Any = None

    model_config = {"frozen": True, "populate_by_name": True}


class EquipmentItem(BaseModel):
    name: str = ""
    qty: int = 1
    attuned: bool = False
    notes: str = ""

    model_config = {"frozen": True, "populate_by_name": True}


class Spell(BaseModel):
    name: str = ""
    level: int | None = None
    prepared: bool = False

    model_config = {"frozen": True, "populate_by_name": True}


class CharacterModel(BaseModel):
    """Normalized character record, persisted as JSON by the store."""

    identity: Identity = Field(default_factory=Identity)
    stat_core: StatCore = Field(default_factory=StatCore, alias="statCore")
    combat: Combat = Field(default_factory=Combat)
    skills: dict[str, Any] = Field(default_factory=dict)
    resources: dict[str, Any] = Field(default_factory=dict)
    equipment: list[EquipmentItem] = Field(default_factory=list)
    spells: list[Spell] = Field(default_factory=list)
    raw: Any = None
    slug: str = "unnamed"

    model_config = {"frozen": True, "populate_by_name": True}

    def to_json(self) -> dict[str, Any]:
        """Serialize with the wire field names (``statCore``, ``AC``)."""
        return self.model_dump(by_alias=True, mode="json")


# ==================== Alias resolution ====================


def _lookup(source: Any, path: str) -> Any:
    """Follow a dotted path through nested dicts, ``None`` on any miss."""
    current = source
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def _first(source: dict[str, Any], *paths: str) -> Any:
    for path in paths:
        value = _lookup(source, path)
        if value is not None:
            return value
    return None


def _first_list(source: dict[str, Any], *paths: str) -> list[Any]:
    """First alias holding a list; other shapes under earlier aliases are skipped."""
    for path in paths:
        value = _lookup(source, path)
        if isinstance(value, list):
            return value
    return []


def _as_int(value: Any) -> int | None:
    """Coerce numbers and numeric strings; anything else is ``None``."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except (ValueError, OverflowError):
            return None
    return None


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


# ==================== Field resolvers ====================


def _resolve_name(raw: dict[str, Any]) -> str:
    return _as_str(_first(raw, "name", "character.name")).strip()


def _resolve_race(raw: dict[str, Any]) -> str:
    race = _first(raw, "race", "character.race", "race_name")
    if isinstance(race, dict):
        race = race.get("fullName") or race.get("baseName") or race.get("name")
    return _as_str(race)


def _resolve_classes(raw: dict[str, Any]) -> list[Any]:
    classes = _first(raw, "classes", "character.classes")
    if isinstance(classes, list):
        return list(classes)
    if isinstance(classes, (dict, str)):
        return [classes]
    single = raw.get("class")
    return [single] if single is not None else []


def _score_from_mapping(stats: dict[str, Any], code: str) -> Any:
    full = ABILITY_NAMES[code]
    for key in (full.capitalize(), full, full.upper(), code.lower(), code, code.capitalize()):
        if key in stats and stats[key] is not None:
            value = stats[key]
            # {"Strength": {"score": 8}} style
            if isinstance(value, dict):
                value = value.get("score", value.get("value"))
            return value
    return None


def _resolve_stats(raw: dict[str, Any]) -> dict[str, int]:
    source = _first(raw, "abilities", "ability_scores", "stats", "character.abilities")
    scores: dict[str, Any] = {}
    if isinstance(source, dict):
        scores = {code: _score_from_mapping(source, code) for code in ABILITY_CODES}
    elif isinstance(source, list):
        for entry in source:
            if not isinstance(entry, dict):
                continue
            code = DDB_STAT_IDS.get(_as_int(entry.get("id")))  # type: ignore[arg-type]
            if code is not None and code not in scores:
                scores[code] = entry.get("value")

    resolved: dict[str, int] = {}
    for code in ABILITY_CODES:
        value = _as_int(scores.get(code))
        resolved[code] = DEFAULT_SCORE if value is None else value
    return resolved


def _resolve_combat(raw: dict[str, Any]) -> Combat:
    hp_block = _as_dict(raw.get("hp"))
    current = hp_block.get("current") if hp_block else raw.get("hp")
    if current is None:
        current = _first(raw, "hit_points", "current_hp")
    hp_max = hp_block.get("max") if hp_block else None
    if hp_max is None:
        hp_max = _first(raw, "hp_max", "hit_points_max", "max_hp")
    temp = hp_block.get("temp") if hp_block else None
    if temp is None:
        temp = _first(raw, "hp_temp", "temp_hp")

    speed = raw.get("speed")
    if speed is None:
        speed = _lookup(raw, "movement.walk")

    return Combat(
        ac=_as_int(_first(raw, "ac", "armor_class", "armorClass", "AC")),
        hp=HitPoints(
            max=_as_int(hp_max),
            current=_as_int(current),
            temp=_as_int(temp) or 0,
        ),
        initiative=raw.get("initiative"),
        speed=speed,
    )


def _entry_name(entry: dict[str, Any]) -> str:
    return _as_str(entry.get("name") or _lookup(entry, "definition.name"))


def _resolve_equipment(raw: dict[str, Any]) -> list[EquipmentItem]:
    items = _first_list(raw, "items", "equipment", "inventory", "character.items")
    equipment = []
    for entry in items:
        entry = _as_dict(entry)
        qty = _as_int(entry.get("qty", entry.get("quantity")))
        equipment.append(
            EquipmentItem(
                name=_entry_name(entry),
                qty=qty or 1,
                attuned=bool(entry.get("attuned") or entry.get("isAttuned")),
                notes=_as_str(entry.get("notes")),
            )
        )
    return equipment


def _resolve_spells(raw: dict[str, Any]) -> list[Spell]:
    spells = []
    for entry in _first_list(raw, "spells", "character.spells"):
        entry = _as_dict(entry)
        level = entry.get("level")
        if level is None:
            level = _lookup(entry, "definition.level")
        spells.append(
            Spell(
                name=_entry_name(entry),
                level=_as_int(level),
                prepared=bool(entry.get("prepared")),
            )
        )
    return spells


def normalize_character(raw: Any) -> CharacterModel:
    """Map an arbitrary character payload onto ``CharacterModel``.

    Args:
        raw: Any decoded JSON value. Non-object input normalizes as ``{}``.

    Returns:
        The normalized model, with ``raw`` holding the input verbatim.
    """
    source = _as_dict(raw)

    char_id = _first(source, "id", "character.id")
    if isinstance(char_id, bool) or not isinstance(char_id, (str, int)) or char_id == "":
        char_id = None

    name = _resolve_name(source)
    slug = slugify(name)
    if char_id is not None:
        slug = f"{slug}-{slugify(char_id)}"

    return CharacterModel(
        identity=Identity(
            id=char_id,
            name=name or "Unknown",
            race=_resolve_race(source),
            classes=_resolve_classes(source),
            background=_as_str(_first(source, "background", "character.background")),
        ),
        stat_core=StatCore(**_resolve_stats(source)),
        combat=_resolve_combat(source),
        skills=_as_dict(source.get("skills")),
        resources=_as_dict(source.get("resources")),
        equipment=_resolve_equipment(source),
        spells=_resolve_spells(source),
        raw=raw,
        slug=slug,
    )


# ==================== Derived views ====================


def class_levels(character: CharacterModel) -> list[Any]:
    """Per-class levels, skipping classes without a usable level."""
    return [
        cls["level"]
        for cls in character.identity.classes
        if isinstance(cls, dict) and cls.get("level")
    ]


def _class_label(cls: Any) -> str:
    if isinstance(cls, dict) and cls.get("name"):
        return str(cls["name"])
    if isinstance(cls, str):
        return cls
    return json.dumps(cls, default=str)


def _or_placeholder(value: Any) -> str:
    if value is None or value == "":
        return PLACEHOLDER
    return str(value)


def render_markdown(character: CharacterModel) -> str:
    """Render a deterministic markdown sheet; missing values become an em-dash."""
    identity = character.identity
    combat = character.combat
    lines = [
        f"# {_or_placeholder(identity.name)}",
        f"**Race:** {_or_placeholder(identity.race)}",
        f"**Classes:** {', '.join(_class_label(cls) for cls in identity.classes)}",
        "",
        f"**AC:** {_or_placeholder(combat.ac)}  |  "
        f"**HP:** {_or_placeholder(combat.hp.current)}/{_or_placeholder(combat.hp.max)}",
        "",
        "## Spells",
    ]
    for spell in character.spells:
        line = f"- {_or_placeholder(spell.name)} (lvl {_or_placeholder(spell.level)})"
        if spell.prepared:
            line += " [prepared]"
        lines.append(line)

    lines.append("")
    lines.append("## Equipment")
    for item in character.equipment:
        line = f"- {item.qty}x {_or_placeholder(item.name)}"
        if item.attuned:
            line += " (attuned)"
        if item.notes:
            line += f" — {item.notes}"
        lines.append(line)
    return "\n".join(lines)
