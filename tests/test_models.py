"""Tests for data models and language configuration."""

import pytest

from site_safety.hazard_analysis.config import (
    Language,
    build_additional_hazards_prompt,
    build_photo_analysis_prompt,
    build_risk_assessment_prompt,
    build_safety_qa_prompt,
    placeholder_for,
    resolve_language,
)
from site_safety.hazard_analysis.models import (
    CompletionRequest,
    CompressedMedia,
    HazardRecord,
    PhotoAnalysisRecord,
    RawMedia,
    RiskLevel,
    risk_level,
)


class TestRawMedia:
    def test_from_path_guesses_mime_type(self, tmp_path, small_png):
        path = tmp_path / "site.png"
        path.write_bytes(small_png)

        media = RawMedia.from_path(str(path))

        assert media.mime_type == "image/png"
        assert media.filename == "site.png"
        assert media.size == len(small_png)

    def test_from_path_unknown_extension(self, tmp_path):
        path = tmp_path / "upload.unknownext"
        path.write_bytes(b"data")
        assert RawMedia.from_path(str(path)).mime_type == "application/octet-stream"


class TestCompressedMedia:
    def test_to_dict_leaves_out_bytes(self):
        media = CompressedMedia(data=b"abc", mime_type="image/jpeg", original_size=10, final_size=3)
        result = media.to_dict()

        assert "data" not in result
        assert result["steps"] == 0
        assert result["oversized"] is False

    def test_compression_ratio(self):
        media = CompressedMedia(data=b"", mime_type="image/jpeg", original_size=200, final_size=50)
        assert media.compression_ratio == 0.25


class TestRiskLevel:
    @pytest.mark.parametrize(
        "severity,likelihood,expected",
        [
            (1, 1, RiskLevel.LOW),
            (2, 2, RiskLevel.LOW),
            (1, 5, RiskLevel.MEDIUM),
            (3, 3, RiskLevel.MEDIUM),
            (2, 5, RiskLevel.HIGH),
            (4, 3, RiskLevel.HIGH),
            (5, 3, RiskLevel.VERY_HIGH),
            (5, 5, RiskLevel.VERY_HIGH),
        ],
    )
    def test_bands(self, severity, likelihood, expected):
        assert risk_level(severity, likelihood) == expected

    def test_hazard_record(self):
        hazard = HazardRecord("fall", 4, 4, "railing")
        assert hazard.risk_score == 16
        assert hazard.risk_level == RiskLevel.VERY_HIGH
        assert hazard.to_dict() == {
            "description": "fall",
            "severity": 4,
            "likelihood": 4,
            "countermeasures": "railing",
        }


def test_photo_analysis_wire_format():
    record = PhotoAnalysisRecord(hazards=["h"], related_regulations=["r"])
    assert record.to_dict() == {
        "hazards": ["h"],
        "engineeringSolutions": [],
        "managementSolutions": [],
        "relatedRegulations": ["r"],
    }


def test_completion_request_defaults():
    request = CompletionRequest(instruction_text="hi")
    assert not request.has_media
    assert request.history == []
    assert request.expect_json is True


class TestLanguage:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("ko", Language.KO),
            ("Korean", Language.KO),
            (" EN ", Language.EN),
            ("english", Language.EN),
            ("auto", Language.AUTO),
            ("fr", Language.KO),
        ],
    )
    def test_normalize(self, value, expected):
        assert Language.normalize(value) == expected

    def test_auto_resolves_to_korean(self):
        assert resolve_language(Language.AUTO) == Language.KO
        assert placeholder_for(Language.AUTO) == "해당 없음"
        assert placeholder_for(Language.EN) == "N/A"


class TestPrompts:
    def test_photo_analysis(self):
        prompt = build_photo_analysis_prompt("crane lift", Language.EN)
        assert "The response language MUST be English" in prompt
        assert prompt.endswith("Image description (optional): crane lift")
        assert '"engineeringSolutions"' in prompt

    def test_risk_assessment(self):
        prompt = build_risk_assessment_prompt("welding", language=Language.KO)
        assert '("welding")' in prompt
        assert "Korean" in prompt
        assert prompt.endswith("Image description (optional): N/A")

    def test_additional_hazards(self):
        prompt = build_additional_hazards_prompt("press", ["pinch"], Language.EN)
        assert "*only new and distinct* ones" in prompt
        assert '- "pinch"' in prompt

    def test_safety_qa_without_image(self):
        prompt = build_safety_qa_prompt(False, Language.EN)
        assert "image analysis" not in prompt
        assert "The answer MUST be in English" in prompt
