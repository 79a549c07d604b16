"""Languages and prompt templates for work-site hazard analysis."""

from enum import Enum
from typing import Dict, Iterable, Optional

# Placeholder for missing text fields in hazard records
NOT_APPLICABLE = "해당 없음"

# Number of previous Q&A turns sent along with a new question
MAX_HISTORY_TURNS = 8


class Language(str, Enum):
    """Languages the AI service can be asked to answer in."""
    KO = "ko"  # Korean
    EN = "en"  # English
    AUTO = "auto"  # Resolves to Korean

    @classmethod
    def normalize(cls, language: str) -> "Language":
        """Normalize language string to Language enum."""
        language_lower = language.lower().strip()
        if language_lower in ("ko", "korean", "kor", "ko-kr", "ko_kr"):
            return cls.KO
        elif language_lower in ("en", "english", "eng"):
            return cls.EN
        elif language_lower in ("auto", "automatic"):
            return cls.AUTO
        else:
            # Unknown languages fall back to the default
            return cls.KO


LANGUAGE_NAMES: Dict[Language, str] = {
    Language.KO: "Korean",
    Language.EN: "English",
}

PLACEHOLDERS: Dict[Language, str] = {
    Language.KO: NOT_APPLICABLE,
    Language.EN: "N/A",
}


def resolve_language(language: Language) -> Language:
    """Resolve AUTO to a concrete language."""
    if language == Language.AUTO:
        return Language.KO
    return language


def placeholder_for(language: Language) -> str:
    """Text used in place of missing hazard descriptions or countermeasures."""
    return PLACEHOLDERS[resolve_language(language)]


PHOTO_ANALYSIS_PROMPT = """IMPORTANT: You MUST respond with a single, valid JSON object. The entire response MUST be ONLY the JSON object. Do NOT use markdown (e.g., ```json).
Analyze the provided image of a work site.
The response language MUST be {language} for all textual content INSIDE the JSON (e.g., string values).
Do NOT include any characters or text from other languages within the JSON values or structure.
The JSON object MUST strictly adhere to the following schema. Use these exact key names:
{{
  "hazards": ["list of DETAILED AND SPECIFIC hazard descriptions. Instead of just 'fall risk', write e.g. 'fall risk due to missing safety railing'. Each description states the dangerous condition and the potential consequence."],
  "engineeringSolutions": ["list of engineering improvement suggestions"],
  "managementSolutions": ["list of management improvement suggestions"],
  "relatedRegulations": ["list of relevant laws or regulations"]
}}
For 'engineeringSolutions', 'managementSolutions' and 'relatedRegulations', each array contains concise, actionable items.
If no items are found for a category, you MUST return an empty array for that category (e.g., "hazards": []).
Do not add any text before or after the JSON object. The response MUST start with '{{' and end with '}}'.
{description_line}"""

RISK_ASSESSMENT_PROMPT = """Based on the provided image and process/equipment name ("{process_name}"), generate a risk assessment.
The response language MUST be {language} for all textual content INSIDE the JSON (e.g. string values).
The output MUST be a JSON array of objects. The entire response MUST be ONLY this JSON array. Do NOT use markdown (e.g., ```json).
Each object represents a hazard and MUST adhere to this schema:
{{
  "description": "string detailing the hazard",
  "severity": "number representing severity (scale 1-5, 5 is highest)",
  "likelihood": "number representing likelihood (scale 1-5, 5 is highest)",
  "countermeasures": "string detailing recommended countermeasures"
}}
Provide concise and actionable information. Severity and likelihood must be numbers.
If no hazards are identified, return an empty JSON array (e.g., []).
Do not add any text before or after the JSON array. The response MUST start with '[' and end with ']'.
{description_line}"""

ADDITIONAL_HAZARDS_PROMPT = """IMPORTANT: You MUST respond with a single, valid JSON array of objects. The entire response MUST be ONLY this JSON array. Do NOT use markdown (e.g., ```json).
For the process/equipment named "{process_name}", identify potential hazards.
{existing_hazards}

The response language MUST be {language} for all textual content INSIDE the JSON (e.g., string values).
Each object in the JSON array represents a hazard and MUST adhere to this schema:
{{
  "description": "string detailing the new hazard",
  "severity": "number representing severity (scale 1-5, 5 is highest)",
  "likelihood": "number representing likelihood (scale 1-5, 5 is highest)",
  "countermeasures": "string detailing recommended countermeasures for the new hazard"
}}
Severity and likelihood must be numbers.
If no *new and distinct* hazards are identified, you MUST return an empty JSON array (i.e., []).
Do not add any text before or after the JSON array. The response MUST start with '[' and end with ']'."""

SAFETY_QA_PROMPT = """You are an AI assistant specializing in industrial safety and health. Your primary language for responses is {language}.
Answer questions based on general knowledge, safety practices and regulations{image_clause}. The answer MUST be in {language}.
{image_instruction}Keep responses concise and informative. If the question is outside your expertise, state that clearly.
If there is previous conversation context, consider it to provide more relevant and contextual answers."""


def _description_line(description: Optional[str]) -> str:
    return f"Image description (optional): {description or 'N/A'}"


def build_photo_analysis_prompt(
    description: Optional[str] = None, language: Language = Language.AUTO
) -> str:
    """Instruction for the free-form photo hazard analysis."""
    return PHOTO_ANALYSIS_PROMPT.format(
        language=LANGUAGE_NAMES[resolve_language(language)],
        description_line=_description_line(description),
    )


def build_risk_assessment_prompt(
    process_name: str, description: Optional[str] = None, language: Language = Language.AUTO
) -> str:
    """Instruction for a severity/likelihood rated risk assessment."""
    return RISK_ASSESSMENT_PROMPT.format(
        process_name=process_name,
        language=LANGUAGE_NAMES[resolve_language(language)],
        description_line=_description_line(description),
    )


def build_additional_hazards_prompt(
    process_name: str, existing: Iterable[str] = (), language: Language = Language.AUTO
) -> str:
    """Instruction asking only for hazards not already in ``existing``."""
    existing = list(existing)
    if existing:
        listed = "\n".join(f'- "{item}"' for item in existing)
        existing_hazards = (
            "The following hazards have already been identified, "
            f"so please provide *only new and distinct* ones:\n{listed}"
        )
    else:
        existing_hazards = "No hazards have been identified yet. Please identify initial hazards."
    return ADDITIONAL_HAZARDS_PROMPT.format(
        process_name=process_name,
        existing_hazards=existing_hazards,
        language=LANGUAGE_NAMES[resolve_language(language)],
    )


def build_safety_qa_prompt(with_image: bool, language: Language = Language.AUTO) -> str:
    """System prompt for the safety Q&A assistant."""
    return SAFETY_QA_PROMPT.format(
        language=LANGUAGE_NAMES[resolve_language(language)],
        image_clause=", and image analysis when provided" if with_image else "",
        image_instruction=(
            "When an image is provided, analyze it for safety hazards and potential risks, "
            "and provide relevant safety recommendations.\n"
            if with_image
            else ""
        ),
    )
