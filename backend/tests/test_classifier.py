"""
Tests for page classification and untrusted model output handling.
"""
import pytest

from conftest import llm_response, risk_payload
from core.classifier import parse_enum, truncate
from core.errors import ClassificationFailed
from core.models import (
    ClearanceStatus,
    RiskCategory,
    RiskSeverity,
    RiskSubCategory,
)


class TestParseEnum:
    """Tests for loose enum resolution."""

    @pytest.mark.parametrize("value,expected", [
        ("HIGH", RiskSeverity.HIGH),
        ("high", RiskSeverity.HIGH),
        ("  Low ", RiskSeverity.LOW),
        ("urgent", RiskSeverity.MEDIUM),
        (None, RiskSeverity.MEDIUM),
        ("", RiskSeverity.MEDIUM),
        ("null", RiskSeverity.MEDIUM),
        ("NULL", RiskSeverity.MEDIUM),
    ])
    def test_severity(self, value, expected):
        assert parse_enum(RiskSeverity, value, RiskSeverity.MEDIUM) is expected

    def test_spaces_and_hyphens_become_underscores(self):
        assert parse_enum(
            RiskSubCategory, "brand name products", RiskSubCategory.UNKNOWN
        ) is RiskSubCategory.BRAND_NAME_PRODUCTS
        assert parse_enum(
            RiskCategory, "product-misuse", RiskCategory.OTHER
        ) is RiskCategory.PRODUCT_MISUSE
        assert parse_enum(
            ClearanceStatus, "not - clear", ClearanceStatus.PENDING
        ) is ClearanceStatus.NOT_CLEAR

    def test_unknown_sub_category(self):
        assert parse_enum(
            RiskSubCategory, "HOLOGRAMS", RiskSubCategory.UNKNOWN
        ) is RiskSubCategory.UNKNOWN


class TestTruncate:
    """Tests for snippet truncation."""

    def test_short_text_untouched(self):
        assert truncate("short line") == "short line"

    def test_long_text_cut_with_ellipsis(self):
        result = truncate("x" * 600)

        assert len(result) == 500
        assert result.endswith("...")

    def test_none_passes_through(self):
        assert truncate(None) is None


class TestRiskClassifier:
    """Tests for RiskClassifier.classify_page."""

    @pytest.mark.asyncio
    async def test_maps_model_output_to_findings(self, classifier, mock_llm_client):
        mock_llm_client.chat.completions.create.return_value = llm_response(
            {"risks": [risk_payload("Coca-Cola", severity="high")]}
        )

        findings = await classifier.classify_page(3, "JACK cracks open a Coca-Cola.", "doc-1")

        assert len(findings) == 1
        finding = findings[0]
        assert finding.page_number == 3
        assert finding.document_id == "doc-1"
        assert finding.severity is RiskSeverity.HIGH
        assert finding.category is RiskCategory.PRODUCT_MISUSE
        assert finding.sub_category is RiskSubCategory.BRAND_NAME_PRODUCTS
        assert finding.entity_name == "Coca-Cola"
        assert finding.is_redacted is False

    @pytest.mark.asyncio
    async def test_defaults_for_unknown_values(self, classifier, mock_llm_client):
        mock_llm_client.chat.completions.create.return_value = llm_response({"risks": [{
            "category": "ALIENS",
            "subCategory": "HOLOGRAMS",
            "severity": "urgent",
            "status": "null",
            "reason": "Something odd",
        }]})

        [finding] = await classifier.classify_page(1, "Some page text")

        assert finding.category is RiskCategory.OTHER
        assert finding.sub_category is RiskSubCategory.UNKNOWN
        assert finding.severity is RiskSeverity.MEDIUM
        assert finding.status is ClearanceStatus.PENDING
        assert finding.entity_name == "Unknown"

    @pytest.mark.asyncio
    async def test_non_string_values_fall_back_to_defaults(self, classifier, mock_llm_client):
        mock_llm_client.chat.completions.create.return_value = llm_response({"risks": [
            risk_payload("Coca-Cola"),
            {"category": "LOCATIONS", "severity": 3, "status": False, "entityName": 5558675309},
        ]})

        findings = await classifier.classify_page(1, "Some page text")

        assert len(findings) == 2
        assert findings[0].entity_name == "Coca-Cola"
        assert findings[1].severity is RiskSeverity.MEDIUM
        assert findings[1].status is ClearanceStatus.PENDING
        assert findings[1].category is RiskCategory.LOCATIONS
        assert findings[1].entity_name == "5558675309"

    @pytest.mark.asyncio
    async def test_malformed_item_does_not_sink_siblings(self, classifier, mock_llm_client):
        mock_llm_client.chat.completions.create.return_value = llm_response({"risks": [
            "not an object",
            risk_payload("Nike"),
        ]})

        [finding] = await classifier.classify_page(1, "Some page text")

        assert finding.entity_name == "Nike"

    @pytest.mark.asyncio
    async def test_long_snippet_truncated(self, classifier, mock_llm_client):
        mock_llm_client.chat.completions.create.return_value = llm_response(
            {"risks": [risk_payload("Nike", snippet="y" * 900)]}
        )

        [finding] = await classifier.classify_page(1, "Some page text")

        assert len(finding.snippet) == 500
        assert finding.snippet.endswith("...")

    @pytest.mark.asyncio
    async def test_blank_page_skips_model(self, classifier, mock_llm_client):
        assert await classifier.classify_page(1, "   \n\t ") == []
        assert await classifier.classify_page(2, None) == []
        mock_llm_client.chat.completions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_user_message_names_the_page(self, classifier, mock_llm_client):
        await classifier.classify_page(7, "EXT. PIER - DUSK")

        kwargs = mock_llm_client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"][1]["content"] == "PAGE 7:\n\nEXT. PIER - DUSK"
        assert kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_null_risks_is_empty(self, classifier, mock_llm_client):
        mock_llm_client.chat.completions.create.return_value = llm_response({"risks": None})

        assert await classifier.classify_page(1, "Some page text") == []

    @pytest.mark.asyncio
    async def test_invalid_json_yields_no_findings(self, classifier, mock_llm_client):
        mock_llm_client.chat.completions.create.return_value = llm_response("not json {")

        assert await classifier.classify_page(1, "Some page text") == []

    @pytest.mark.asyncio
    async def test_model_error_yields_no_findings(self, classifier, mock_llm_client):
        mock_llm_client.chat.completions.create.side_effect = TimeoutError("model timed out")

        assert await classifier.classify_page(1, "Some page text") == []

    @pytest.mark.asyncio
    async def test_strict_variant_raises(self, classifier, mock_llm_client):
        mock_llm_client.chat.completions.create.side_effect = RuntimeError("rate limited")

        with pytest.raises(ClassificationFailed) as exc_info:
            await classifier.classify_page_strict(4, "Some page text")

        assert exc_info.value.page_number == 4
