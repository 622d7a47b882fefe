"""Guess Who character roster and lookup helpers.

The catalog is static: it is seeded once at process start and never mutated.
Characters are referenced everywhere else by identifier only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import CharacterNotFoundError


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class HairColor(str, Enum):
    BLACK = "black"
    BROWN = "brown"
    BLONDE = "blonde"
    RED = "red"
    GRAY = "gray"
    WHITE = "white"
    OTHER = "other"


class HairLength(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"
    BALD = "bald"


class EyeColor(str, Enum):
    BROWN = "brown"
    BLUE = "blue"
    GREEN = "green"
    HAZEL = "hazel"
    GRAY = "gray"


class AgeBracket(str, Enum):
    YOUNG = "young"
    MIDDLE_AGED = "middle-aged"
    ELDERLY = "elderly"


class SkinTone(str, Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    DARK = "dark"


class Expression(str, Enum):
    SMILING = "smiling"
    SERIOUS = "serious"
    NEUTRAL = "neutral"


@dataclass(frozen=True, slots=True)
class CharacterAttributes:
    """Closed attribute vector describing a character's appearance."""

    gender: Gender
    hair_color: HairColor
    hair_length: HairLength
    eye_color: EyeColor
    has_glasses: bool
    has_facial_hair: bool
    age: AgeBracket
    skin_tone: SkinTone
    has_hat: bool
    has_earrings: bool
    expression: Expression

    def to_dict(self) -> Dict[str, Any]:
        """Return the attribute vector with camelCase keys, as sent to the oracle and the front end."""
        return {
            "gender": self.gender.value,
            "hairColor": self.hair_color.value,
            "hairLength": self.hair_length.value,
            "eyeColor": self.eye_color.value,
            "hasGlasses": self.has_glasses,
            "hasFacialHair": self.has_facial_hair,
            "age": self.age.value,
            "skinTone": self.skin_tone.value,
            "hasHat": self.has_hat,
            "hasEarrings": self.has_earrings,
            "expression": self.expression.value,
        }


@dataclass(frozen=True, slots=True)
class Character:
    """A playable character."""

    id: str
    name: str
    image_url: str
    attributes: CharacterAttributes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "imageUrl": self.image_url,
            "attributes": self.attributes.to_dict(),
        }


@dataclass
class CharacterCatalog:
    """Read-only, insertion-ordered collection of characters."""

    characters: Tuple[Character, ...]
    _by_id: Dict[str, Character] = field(init=False, repr=False)
    _by_name: Dict[str, Character] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.characters = tuple(self.characters)
        self._by_id = {}
        self._by_name = {}
        for character in self.characters:
            if character.id in self._by_id:
                raise ValueError(f"Duplicate character id {character.id}")
            self._by_id[character.id] = character
            self._by_name.setdefault(character.name.strip().lower(), character)

    def __len__(self) -> int:
        return len(self.characters)

    def __iter__(self):
        return iter(self.characters)

    def __contains__(self, character_id: object) -> bool:
        return character_id in self._by_id

    def list_all(self) -> List[Character]:
        """Return every character in insertion order."""
        return list(self.characters)

    def get(self, character_id: str) -> Character:
        """Return a character by id or raise :class:`CharacterNotFoundError`."""
        try:
            return self._by_id[character_id]
        except KeyError:
            raise CharacterNotFoundError(character_id) from None

    def find(self, character_id: Optional[str]) -> Optional[Character]:
        if character_id is None:
            return None
        return self._by_id.get(character_id)

    def resolve(self, reference: Any) -> Optional[Character]:
        """Match an oracle reference against an id first, then a case-insensitive name."""
        if reference is None:
            return None
        text = str(reference).strip()
        if not text:
            return None
        return self._by_id.get(text) or self._by_name.get(text.lower())

    def remaining(self, eliminated: Iterable[str]) -> List[Character]:
        """Characters not in ``eliminated``, in catalog order."""
        excluded = set(eliminated)
        return [character for character in self.characters if character.id not in excluded]

    def ordered_ids(self, ids: Iterable[str]) -> List[str]:
        """Return ``ids`` in catalog order; unknown ids trail in sorted order."""
        wanted = set(ids)
        ordered = [character.id for character in self.characters if character.id in wanted]
        unknown = sorted(wanted.difference(self._by_id))
        return ordered + unknown


def _character(
    index: int,
    name: str,
    photo: str,
    gender: str,
    hair_color: str,
    hair_length: str,
    eye_color: str,
    has_glasses: bool,
    has_facial_hair: bool,
    age: str,
    skin_tone: str,
    has_hat: bool,
    has_earrings: bool,
    expression: str,
) -> Character:
    return Character(
        id=f"char_{index}",
        name=name,
        image_url=f"https://images.unsplash.com/photo-{photo}?w=400&h=400&fit=crop&crop=face",
        attributes=CharacterAttributes(
            gender=Gender(gender),
            hair_color=HairColor(hair_color),
            hair_length=HairLength(hair_length),
            eye_color=EyeColor(eye_color),
            has_glasses=has_glasses,
            has_facial_hair=has_facial_hair,
            age=AgeBracket(age),
            skin_tone=SkinTone(skin_tone),
            has_hat=has_hat,
            has_earrings=has_earrings,
            expression=Expression(expression),
        ),
    )


# name, photo, gender, hair colour, hair length, eyes, glasses, facial hair, age, skin, hat, earrings, expression
_ROSTER: Sequence[Tuple[Any, ...]] = (
    ("Sarah", "1494790108755-2616b612d83c", "female", "brown", "long", "blue", False, False, "young", "light", False, True, "smiling"),
    ("Michael", "1472099645785-5658abf4ff4e", "male", "gray", "short", "brown", True, True, "middle-aged", "light", False, False, "serious"),
    ("Lily", "1438761681033-6461ffad8d80", "female", "black", "long", "brown", False, False, "young", "medium", False, False, "neutral"),
    ("Marcus", "1500648767791-00dcc994a43e", "male", "black", "short", "brown", False, False, "young", "dark", False, False, "smiling"),
    ("Eleanor", "1544725176-7c40e5a71c5e", "female", "gray", "short", "blue", False, False, "elderly", "light", False, False, "neutral"),
    ("Tommy", "1507003211169-0a1dd7228f2d", "male", "red", "short", "green", False, False, "young", "light", False, False, "smiling"),
    ("Zoe", "1487412720507-e7ab37603c6f", "female", "other", "medium", "brown", False, False, "young", "light", False, True, "serious"),
    ("Bruno", "1560250097-0b93528c311a", "male", "black", "bald", "brown", False, True, "middle-aged", "medium", False, False, "serious"),
    ("Emma", "1489424731084-a5d8b219a5bb", "female", "blonde", "long", "green", False, False, "young", "light", False, False, "smiling"),
    ("Devon", "1517070208541-6ddc4d3efbcb", "male", "black", "long", "brown", False, False, "young", "dark", False, False, "smiling"),
    ("Nova", "1504703395950-b89145a5425b", "female", "other", "short", "blue", False, False, "young", "light", False, True, "neutral"),
    ("Arthur", "1547425260-76bcadfb4f2c", "male", "white", "medium", "blue", False, True, "elderly", "light", False, False, "neutral"),
    ("Rosa", "1506277886164-e25aa3f4ef7f", "female", "brown", "medium", "brown", False, False, "young", "medium", False, True, "smiling"),
    ("Hassan", "1521119989659-a83eee488004", "male", "black", "medium", "brown", False, True, "young", "medium", False, False, "serious"),
    ("Maya", "1580489944761-15a19d654956", "female", "brown", "short", "brown", True, False, "middle-aged", "medium", False, False, "neutral"),
    ("Alex", "1519085360753-af0119f7cbe7", "male", "brown", "medium", "hazel", False, False, "young", "light", False, False, "smiling"),
    ("Scarlett", "1509967419530-da38b4704bc6", "female", "red", "long", "green", False, False, "young", "light", False, False, "neutral"),
    ("Victor", "1556157382-97eda2d62296", "male", "gray", "short", "blue", False, False, "middle-aged", "light", False, False, "serious"),
    ("Keisha", "1524250502761-1ac6f2e30d43", "female", "black", "long", "brown", False, False, "young", "dark", False, True, "smiling"),
    ("Daniel", "1492562080023-ab3db95bfbce", "male", "brown", "short", "brown", False, True, "middle-aged", "light", False, False, "smiling"),
)


def default_catalog() -> CharacterCatalog:
    """Build the standard 20-character roster (ids ``char_1`` .. ``char_20``)."""
    return CharacterCatalog(
        characters=tuple(_character(index, *row) for index, row in enumerate(_ROSTER, start=1))
    )
