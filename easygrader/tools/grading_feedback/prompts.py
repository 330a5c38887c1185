"""Grading prompt assembly and grading policy templates."""

from typing import Any, Dict

from .models import GradingResponse

SYSTEM_INSTRUCTION = (
    "You are a teaching assistant. Follow the user's grading policy and output valid JSON only."
)

ROLE_FRAMING = (
    "You are an expert, impartial teaching assistant. Your task is to grade a student's work."
)

INSTRUCTIONS = [
    "1. Reference the 'ORIGINAL ASSIGNMENT' for total points.",
    "2. Apply the 'GRADING RUBRIC' strictly.",
    "3. Output ONLY the specified JSON.",
    "4. Breakdowns should be specific (referencing exact errors).",
]

SECTION_BREAK = "\n---"

POLICY_TEMPLATES: Dict[str, str] = {
    "coding": """### GRADING PHILOSOPHY: Conceptual Understanding > Syntactic Perfection
- **Dataset Leniency:** Do NOT deduct points for different filenames if data loads correctly.
- **Data Loading:** Only deduct if structure is incorrect.
- **Effort Points:** Award effort points if logic is visible but syntax fails, unless the rubric forbids it.
- **Strict Deductions:** Deduct for conceptual errors (e.g., using mean instead of median for skewed data).

### FEEDBACK STYLE
- Be specific: "Misclassified 'origin' as quantitative; affects summary stats."
- Be neutral and educational.
- Provide a fix for every deduction.""",

    "writing": """### GRADING PHILOSOPHY: Argument & Evidence > Grammar
- **Thesis:** The thesis must be clear and arguable.
- **Evidence:** Deduct points if claims are unsupported by text/sources.
- **Structure:** Paragraphs must have topic sentences.
- **Grammar:** Do not deduct for minor typos unless readability is compromised.

### FEEDBACK STYLE
- Tone: Constructive Editor.
- Format: "Weak topic sentence in Para 2 -> obscure main point. Fix: Explicitly state the argument.\"""",

    "math": """### GRADING PHILOSOPHY: Logic > Arithmetic
- **Process:** Award majority points for correct logical steps/proof structure.
- **Arithmetic:** Minor calculation errors get small deductions (e.g., -0.5), provided the logic remains sound.
- **Notation:** Mathematical notation must be precise.
- **Proof:** "Show your work" is mandatory.

### FEEDBACK STYLE
- Pinpoint the exact step where logic broke.
- Differentiate between "Calculation Error" and "Conceptual Error".""",
}

DEFAULT_POLICY_TEMPLATE = "coding"


def get_policy_template(name: str) -> str:
    """Return a built-in grading policy by name."""
    try:
        return POLICY_TEMPLATES[name]
    except KeyError:
        raise KeyError(
            f"Unknown policy template {name!r}; choose from {', '.join(sorted(POLICY_TEMPLATES))}"
        ) from None


def build_prompt(policy: str, spec_text: str, rubric_text: str,
                 submission_text: str, filename: str) -> str:
    """
    Build the grading prompt for one submission.

    The section order is fixed: role framing, the user's policy verbatim,
    numbered instructions, assignment, rubric, the submission labelled with
    its filename, and the closing directive.
    """
    prompt_parts = [
        ROLE_FRAMING,
        "### USER DEFINED GRADING POLICY & TONE ###",
        policy,
        "\n### INSTRUCTIONS ###",
        *INSTRUCTIONS,
        SECTION_BREAK,
        f"### ORIGINAL ASSIGNMENT ###\n{spec_text}",
        SECTION_BREAK,
        f"### GRADING RUBRIC ###\n{rubric_text}",
        SECTION_BREAK,
        f'### STUDENT SUBMISSION: "{filename}" ###\n{submission_text}',
        SECTION_BREAK,
        "Grade the submission now.",
    ]
    return "\n".join(prompt_parts)


def response_json_schema() -> Dict[str, Any]:
    """JSON schema of the structured output requested from the model."""
    return GradingResponse.model_json_schema()
