"""
Response Parser.

Turns raw model text into a validated domain record. Model output is
semi-structured, so extraction is a list of strategies tried in priority
order; the first one that yields every essential field wins:

    1. HeadingStrategy     - `# Title` plus `## Section` bodies
    2. FencedJsonStrategy  - a ```json ... ``` block
    3. LooseJsonStrategy   - first balanced {...} in the text

If none of them produce the essentials the parse fails hard (ParseFailure);
there is no silent fallback record. After extraction, optional fields get
their defaults, numeric fields are clamped (with a warning), a record ID is
assigned if missing or malformed, and the result is validated against the
pydantic model (ValidationFailure lists the offending field paths).

Usage:
    parser = ResponseParser(IdAllocator(store.list_challenge_ids))
    challenge = await parser.parse(raw_text, CHALLENGE_SCHEMA,
                                   defaults={"difficulty": 5})
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type
import json
import logging
import re

from pydantic import BaseModel, ValidationError

from techdeck.core.config import Settings, settings as default_settings
from techdeck.core.exceptions import ParseFailure, ValidationFailure
from techdeck.models.records import Challenge, DomainRecord, Feedback, LetterResponse, utc_now
from techdeck.utils.id_allocator import IdAllocator
from techdeck.utils.markdown import extract_h1, extract_h2, parse_comma_separated, parse_list

logger = logging.getLogger(__name__)

# Field kinds for heading-tagged sections
TEXT = "text"
LIST = "list"
CSV = "csv"

NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")
FENCED_JSON_RE = re.compile(r"```json\s*\n(.*?)\n?\s*```", re.IGNORECASE | re.DOTALL)


# ============================================================================
# SCHEMAS
# ============================================================================

@dataclass(frozen=True)
class HeadingField:
    """Maps an H2 heading to a record field."""
    field: str
    heading: str
    kind: str = TEXT


@dataclass(frozen=True)
class NumericRule:
    """Allowed range for a numeric field and the value used when it is unusable."""
    minimum: float
    maximum: float
    default: Optional[float] = None
    integer: bool = True


@dataclass(frozen=True)
class RecordSchema:
    """What to extract for one record type and how to check it."""
    name: str
    model: Type[BaseModel]
    title_field: Optional[str] = None
    heading_fields: Tuple[HeadingField, ...] = ()
    essential: Tuple[str, ...] = ()
    essential_any: Tuple[str, ...] = ()
    list_fields: Tuple[str, ...] = ()
    csv_fields: Tuple[str, ...] = ()
    numeric: Mapping[str, NumericRule] = field(default_factory=dict)
    id_field: Optional[str] = None
    timestamp_field: Optional[str] = None

    def missing_essentials(self, data: Mapping[str, Any]) -> List[str]:
        missing = [name for name in self.essential if _is_empty(data.get(name))]
        if self.essential_any and all(_is_empty(data.get(name)) for name in self.essential_any):
            missing.append(" or ".join(self.essential_any))
        return missing


CHALLENGE_SCHEMA = RecordSchema(
    name="challenge",
    model=Challenge,
    title_field="title",
    heading_fields=(
        HeadingField("description", "Description"),
        HeadingField("topics", "Topics", CSV),
        HeadingField("requirements", "Requirements", LIST),
        # MCQ choices: ## Options wins over ## Examples
        HeadingField("examples", "Options", LIST),
        HeadingField("examples", "Examples", LIST),
        HeadingField("hints", "Hints", LIST),
    ),
    essential=("title", "description", "topics"),
    list_fields=("requirements", "examples", "hints", "topics"),
    csv_fields=("topics",),
    numeric={"difficulty": NumericRule(1, 10, default=5)},
    id_field="id",
    timestamp_field="created_at",
)

FEEDBACK_SCHEMA = RecordSchema(
    name="feedback",
    model=Feedback,
    heading_fields=(
        HeadingField("strengths", "Strengths", LIST),
        HeadingField("weaknesses", "Weaknesses", LIST),
        HeadingField("suggestions", "Suggestions", LIST),
        HeadingField("score", "Score"),
        HeadingField("improvement_path", "Improvement Path"),
    ),
    essential_any=("strengths", "weaknesses", "suggestions", "improvement_path"),
    list_fields=("strengths", "weaknesses", "suggestions"),
    numeric={"score": NumericRule(0, 100, default=None)},
    # submission_id names an existing challenge, callers pass it as an override
    timestamp_field="created_at",
)

LETTER_RESPONSE_SCHEMA = RecordSchema(
    name="letter response",
    model=LetterResponse,
    essential=("content",),
)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


# ============================================================================
# EXTRACTION STRATEGIES
# ============================================================================

class ExtractionStrategy(ABC):
    """Pulls candidate field values out of raw model text."""

    name: str = "base"

    @abstractmethod
    def extract(self, raw_text: str, schema: RecordSchema) -> Dict[str, Any]:
        """Return field-name -> value for whatever could be found (may be empty)."""


class HeadingStrategy(ExtractionStrategy):
    """Heading-tagged Markdown: H1 title, H2 sections matched by exact text."""

    name = "heading"

    def extract(self, raw_text: str, schema: RecordSchema) -> Dict[str, Any]:
        data: Dict[str, Any] = {}

        if schema.title_field:
            title = extract_h1(raw_text)
            if title:
                data[schema.title_field] = title

        for heading_field in schema.heading_fields:
            if heading_field.field in data:
                continue
            body = extract_h2(raw_text, heading_field.heading)
            if body is None:
                continue
            if heading_field.kind == LIST:
                value: Any = parse_list(body)
            elif heading_field.kind == CSV:
                value = parse_comma_separated(body)
            else:
                value = body
            if not _is_empty(value):
                data[heading_field.field] = value

        return data


class _JsonStrategy(ExtractionStrategy):
    """Shared key normalization for JSON payloads."""

    def _normalize(self, payload: Any, schema: RecordSchema) -> Dict[str, Any]:
        if not isinstance(payload, dict):
            return {}

        # Accept field names, camelCase aliases and any casing of either
        lookup: Dict[str, str] = {}
        for name, info in schema.model.model_fields.items():
            lookup[name.lower()] = name
            if info.alias:
                lookup[info.alias.lower()] = name

        data: Dict[str, Any] = {}
        for key, value in payload.items():
            name = lookup.get(str(key).lower())
            if name is None or value is None:
                continue
            if name in schema.list_fields and isinstance(value, str):
                value = parse_comma_separated(value) if name in schema.csv_fields else parse_list(value)
            data[name] = value
        return data


class FencedJsonStrategy(_JsonStrategy):
    """A ```json fenced block, parsed directly."""

    name = "fenced-json"

    def extract(self, raw_text: str, schema: RecordSchema) -> Dict[str, Any]:
        match = FENCED_JSON_RE.search(raw_text)
        if not match:
            return {}
        try:
            payload = json.loads(match.group(1))
        except json.JSONDecodeError as e:
            logger.debug(f"Fenced JSON block did not decode: {e}")
            return {}
        return self._normalize(payload, schema)


class LooseJsonStrategy(_JsonStrategy):
    """First balanced {...} substring that decodes to a JSON object."""

    name = "loose-json"

    def extract(self, raw_text: str, schema: RecordSchema) -> Dict[str, Any]:
        decoder = json.JSONDecoder()
        for match in re.finditer(r"\{", raw_text):
            try:
                candidate, _ = decoder.raw_decode(raw_text[match.start():])
            except json.JSONDecodeError:
                continue
            if isinstance(candidate, dict):
                return self._normalize(candidate, schema)
        return {}


DEFAULT_STRATEGIES: Tuple[ExtractionStrategy, ...] = (
    HeadingStrategy(),
    FencedJsonStrategy(),
    LooseJsonStrategy(),
)


# ============================================================================
# PARSER
# ============================================================================

@dataclass
class ParseOutcome:
    """Validated record plus how it was obtained."""
    record: DomainRecord
    strategy: str
    warnings: List[str] = field(default_factory=list)


class ResponseParser:
    """
    Converts raw model text into validated Challenge/Feedback/LetterResponse records.
    """

    def __init__(
        self,
        id_allocator: Optional[IdAllocator] = None,
        strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES,
        numeric_defaults: Optional[Mapping[str, Any]] = None
    ):
        self.id_allocator = id_allocator
        self.strategies = tuple(strategies)
        self.numeric_defaults = dict(numeric_defaults or {})

    @classmethod
    def from_settings(
        cls,
        id_allocator: Optional[IdAllocator] = None,
        config: Optional[Settings] = None
    ) -> "ResponseParser":
        config = config or default_settings
        return cls(id_allocator, numeric_defaults={"difficulty": config.DEFAULT_DIFFICULTY})

    async def parse(
        self,
        raw_text: str,
        schema: RecordSchema,
        defaults: Optional[Mapping[str, Any]] = None,
        overrides: Optional[Mapping[str, Any]] = None
    ) -> DomainRecord:
        """
        Parse and validate one record.

        Args:
            raw_text: Model reply
            schema: Target record schema (CHALLENGE_SCHEMA, ...)
            defaults: Values used only when extraction found nothing
            overrides: Values that always replace extracted ones

        Raises:
            ParseFailure: Essential fields absent from every strategy
            ValidationFailure: Extracted record violates the model
        """
        outcome = await self.parse_detailed(raw_text, schema, defaults, overrides)
        return outcome.record

    async def parse_detailed(
        self,
        raw_text: str,
        schema: RecordSchema,
        defaults: Optional[Mapping[str, Any]] = None,
        overrides: Optional[Mapping[str, Any]] = None
    ) -> ParseOutcome:
        overrides = dict(overrides or {})
        data, strategy = self._extract(raw_text or "", schema, overrides)
        warnings: List[str] = []

        for name, value in (defaults or {}).items():
            if _is_empty(data.get(name)):
                data[name] = value

        for name in schema.list_fields:
            data.setdefault(name, [])

        # null insights etc. fall back to the model's own defaults
        data = {name: value for name, value in data.items() if value is not None}

        for name, rule in schema.numeric.items():
            self._apply_numeric_rule(data, name, rule, warnings)

        if schema.timestamp_field and _is_empty(data.get(schema.timestamp_field)):
            data[schema.timestamp_field] = utc_now()

        if schema.id_field:
            await self._ensure_id(data, schema, warnings)

        for warning in warnings:
            logger.warning(f"⚠️ {schema.name}: {warning}")

        try:
            record = schema.model.model_validate(data)
        except ValidationError as e:
            field_errors = [
                (" -> ".join(str(loc) for loc in error["loc"]) or "<root>", error["msg"])
                for error in e.errors()
            ]
            logger.error(f"❌ Generated {schema.name} data failed validation: {field_errors}")
            logger.debug(f"📄 Data that failed validation: {data}")
            raise ValidationFailure(schema.name, field_errors) from e

        logger.info(f"✅ Parsed {schema.name} using {strategy} extraction")
        return ParseOutcome(record=record, strategy=strategy, warnings=warnings)

    def _extract(
        self,
        raw_text: str,
        schema: RecordSchema,
        overrides: Dict[str, Any]
    ) -> Tuple[Dict[str, Any], str]:
        best_missing: Optional[List[str]] = None

        for strategy in self.strategies:
            candidate = {**strategy.extract(raw_text, schema), **overrides}
            missing = schema.missing_essentials(candidate)
            if not missing:
                return candidate, strategy.name
            logger.debug(f"{strategy.name} extraction missing {missing} for {schema.name}")
            if best_missing is None or len(missing) < len(best_missing):
                best_missing = missing

        logger.error(f"❌ Failed to parse essential {schema.name} fields from AI response")
        logger.debug(f"📄 Raw AI response:\n{raw_text}")
        raise ParseFailure(schema.name, best_missing or list(schema.essential))

    def _apply_numeric_rule(
        self,
        data: Dict[str, Any],
        name: str,
        rule: NumericRule,
        warnings: List[str]
    ) -> None:
        default = self.numeric_defaults.get(name, rule.default)
        raw = data.get(name)

        if raw is None:
            if default is not None:
                data[name] = default
            return

        number: Optional[float] = None
        if isinstance(raw, bool):
            number = None
        elif isinstance(raw, (int, float)):
            number = float(raw)
        elif isinstance(raw, str):
            match = NUMBER_RE.search(raw)
            number = float(match.group(0)) if match else None

        if number is None:
            warnings.append(f"{name} value {raw!r} is not numeric, using default {default}")
            if default is None:
                data.pop(name, None)
            else:
                data[name] = default
            return

        clamped = min(max(number, rule.minimum), rule.maximum)
        if clamped != number:
            warnings.append(
                f"{name} value {number:g} outside [{rule.minimum:g}, {rule.maximum:g}], clamped to {clamped:g}"
            )
        data[name] = int(round(clamped)) if rule.integer else clamped

    async def _ensure_id(self, data: Dict[str, Any], schema: RecordSchema, warnings: List[str]) -> None:
        current = data.get(schema.id_field)
        if self.id_allocator is None:
            return

        if self.id_allocator.is_valid(current):
            if await self.id_allocator.claim(current):
                return
            reason = "is already in use"
        else:
            reason = "does not match the ID pattern"

        new_id = await self.id_allocator.allocate()
        if current:
            warnings.append(f"{schema.id_field} {current!r} {reason}, reassigned {new_id}")
        data[schema.id_field] = new_id
