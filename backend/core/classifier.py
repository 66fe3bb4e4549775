"""
ScriptSentries Risk Classifier
==============================
Sends one script page to the language model and maps its structured
answer into RiskFinding records.

Model output is treated as untrusted:
- Enum fields are case-normalized and resolved against closed enumerations
- Unknown, missing or "null" values fall back to safe defaults
- Snippets are truncated to a fixed length
- A failure on one page yields no findings for that page only
"""

import json
import logging
import re
from enum import Enum
from typing import Any, TypeVar

from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.config import SNIPPET_MAX_LENGTH, Settings, get_settings
from core.errors import ClassificationFailed
from core.models import (
    ClearanceStatus,
    RiskCategory,
    RiskFinding,
    RiskSeverity,
    RiskSubCategory,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

_SEPARATORS = re.compile(r"[\s\-]+")


class AiRiskItem(BaseModel):
    """One risk as returned by the model. Every field is a loose string."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    category: str | None = None
    sub_category: str | None = Field(default=None, alias="subCategory")
    severity: str | None = None
    status: str | None = None
    entity_name: str | None = Field(default=None, alias="entityName")
    snippet: str | None = None
    reason: str | None = None
    suggestion: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def scalar_to_str(cls, v: Any) -> str | None:
        """Numbers, booleans and other non-string values arrive as text."""
        if v is None or isinstance(v, str):
            return v
        return str(v)


class AiPageResponse(BaseModel):
    """Top-level payload expected from the model. Items are validated one by one."""
    model_config = ConfigDict(extra="ignore")

    risks: list[Any] | None = None


RESPONSE_FORMAT = """{
    "risks": [
        {
            "category": "PRODUCT_MISUSE",
            "subCategory": "BRAND_NAME_PRODUCTS",
            "severity": "HIGH | MEDIUM | LOW",
            "status": "PENDING | PERMISSIBLE | NOT_CLEAR | ...",
            "entityName": "the brand, person, place or number at issue",
            "snippet": "the exact line from the page",
            "reason": "why this is a clearance risk",
            "suggestion": "how production can mitigate it"
        }
    ]
}"""

# System prompt for page classification
CLASSIFICATION_PROMPT = """You are a senior media law attorney specializing in film and television production clearances.
Analyze the provided script page for all legal and IP risks.

CONTEXTUAL RULES (apply strictly):

1. PRODUCTS / BRANDS:
   - Protagonist uses a brand naturally -> LOW, status PERMISSIBLE, subCategory BRAND_NAME_PRODUCTS
   - Brand used as a weapon, drug paraphernalia or criminal tool, or mocked -> HIGH, category PRODUCT_MISUSE, subCategory PRODUCT_MISUSE
   - Brand shown prominently and positively -> category MARKETING_ADDED_VALUE, subCategory LOGOS_GRAPHICS

2. REAL PEOPLE:
   - Living celebrity mocked or placed in a false scenario -> HIGH, category LIKENESS, subCategory PARODIES_SPOOFS_IMITATIONS
   - Historical figure referenced neutrally -> LOW, category REFERENCES, subCategory REFERENCES
   - Real politician depicted committing illegal acts -> HIGH, category LIKENESS, subCategory NAME_AND_LIKENESS_USE

3. MUSIC:
   - Song lyrics quoted, even partially -> HIGH, category MUSIC_CHOREOGRAPHY, subCategory MUSIC
   - Song title mentioned casually -> LOW, category REFERENCES, subCategory REFERENCES
   - Specific choreography described -> MEDIUM, category MUSIC_CHOREOGRAPHY, subCategory PLAYBACK

4. LOCATIONS:
   - Real private business named negatively -> HIGH, category LOCATIONS, subCategory REAL_LOCALES_ENTITIES_LOGOS
   - Generic places ("a coffee shop") -> no risk
   - Named landmark used neutrally -> LOW, category LOCATIONS, subCategory REAL_LOCALES_ENTITIES_LOGOS

5. NUMBERS:
   - Any 10-digit phone number -> MEDIUM, category NAMES_NUMBERS, subCategory TELEPHONE_NUMBERS
   - Real URLs or street addresses -> MEDIUM, category NAMES_NUMBERS, subCategory ADDRESSES_URLS_LICENSE_NUMBERS

6. PROPS / WARDROBE:
   - Named designer item used normally -> LOW, category PROPS_SET_DRESSING, subCategory BRAND_NAME_PRODUCTS
   - Military uniform used incorrectly -> MEDIUM, category WARDROBE, subCategory WARDROBE

MAPPING RULES:
- Valid categories: {categories}
- Every risk MUST have a subCategory from: {sub_categories}
- If no subCategory fits, use REFERENCES. Never return null.
- If the page has no risks, return an empty "risks" list.

RESPONSE FORMAT:
Return a single valid JSON object matching:
{response_format}"""


def parse_enum(enum_cls: type[E], value: Any, default: E) -> E:
    """
    Resolve a loose model value against a closed enumeration.

    Upper-cases the value and collapses spaces/hyphens to "_" before the
    lookup. None, blank, "null" and unknown names resolve to `default`.
    """
    if value is None:
        return default
    text = str(value).strip()
    if not text or text.lower() == "null":
        return default
    key = _SEPARATORS.sub("_", text.upper())
    try:
        return enum_cls[key]
    except KeyError:
        logger.debug(f"Unknown {enum_cls.__name__} value '{value}', using {default.value}")
        return default


def truncate(text: str | None, max_length: int = SNIPPET_MAX_LENGTH) -> str | None:
    """Cut text to `max_length` characters, ending in "..." when shortened."""
    if text is None:
        return None
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


class RiskClassifier:
    """
    Classifies a single script page into RiskFinding records.

    The model client is created from settings unless one is injected.
    """

    def __init__(
        self,
        llm_client: AsyncOpenAI | None = None,
        settings: Settings | None = None
    ):
        self.settings = settings or get_settings()
        self.llm_client = llm_client or AsyncOpenAI(
            api_key=self.settings.openai_api_key,
            base_url=self.settings.llm_base_url,
            timeout=self.settings.llm_timeout_seconds
        )
        self.model = self.settings.llm_model
        self.system_prompt = CLASSIFICATION_PROMPT.format(
            categories=", ".join(c.value for c in RiskCategory),
            sub_categories=", ".join(
                s.value for s in RiskSubCategory if s is not RiskSubCategory.UNKNOWN
            ),
            response_format=RESPONSE_FORMAT
        )

    async def classify_page(
        self,
        page_number: int,
        page_text: str | None,
        document_id: str = ""
    ) -> list[RiskFinding]:
        """
        Classify one page, recovering from any failure.

        Returns:
            Findings for the page; empty on blank text or on failure
        """
        try:
            return await self.classify_page_strict(page_number, page_text, document_id)
        except ClassificationFailed as e:
            logger.error(str(e))
            return []

    async def classify_page_strict(
        self,
        page_number: int,
        page_text: str | None,
        document_id: str = ""
    ) -> list[RiskFinding]:
        """
        Classify one page.

        Raises:
            ClassificationFailed: If the model call or response parsing fails
        """
        if page_text is None or not page_text.strip():
            return []

        try:
            payload = await self._call_model(page_number, page_text)
            response = AiPageResponse.model_validate(payload)
        except (json.JSONDecodeError, ValidationError) as e:
            raise ClassificationFailed(page_number, f"unparseable response: {e}") from e
        except Exception as e:
            raise ClassificationFailed(page_number, str(e)) from e

        findings = []
        for raw_item in response.risks or []:
            try:
                item = AiRiskItem.model_validate(raw_item)
            except ValidationError as e:
                logger.warning(f"Page {page_number}: skipping malformed risk item: {e}")
                continue
            findings.append(self.to_finding(item, page_number, document_id))
        logger.info(f"Page {page_number}: {len(findings)} risks")
        return findings

    async def _call_model(self, page_number: int, page_text: str) -> Any:
        response = await self.llm_client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": f"PAGE {page_number}:\n\n{page_text}"}
            ],
            response_format={"type": "json_object"},
            temperature=self.settings.llm_temperature,
            max_tokens=self.settings.llm_max_tokens
        )
        content = response.choices[0].message.content
        if not content:
            raise ValueError("empty model response")
        return json.loads(content)

    @staticmethod
    def to_finding(item: AiRiskItem, page_number: int, document_id: str) -> RiskFinding:
        """Map one model item to a finding, applying defaults."""
        return RiskFinding(
            document_id=document_id,
            page_number=page_number,
            category=parse_enum(RiskCategory, item.category, RiskCategory.OTHER),
            sub_category=parse_enum(RiskSubCategory, item.sub_category, RiskSubCategory.UNKNOWN),
            severity=parse_enum(RiskSeverity, item.severity, RiskSeverity.MEDIUM),
            status=parse_enum(ClearanceStatus, item.status, ClearanceStatus.PENDING),
            entity_name=item.entity_name if item.entity_name is not None else "Unknown",
            snippet=truncate(item.snippet),
            reason=item.reason,
            suggestion=item.suggestion,
            is_redacted=False
        )
