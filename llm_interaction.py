import json
import re
from functools import lru_cache
from typing import List, Optional, Type, TypeVar

import structlog
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from errors import GenerationError, LLMResponseDecodeError
from settings import get_settings
from schemas import IndustryInsightData, QuizQuestion, QuizResponse, QuestionResult


logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# --- Application Info for OpenRouter ---
APP_NAME = "Career Coach"
APP_URL = "https://github.com/career-coach/career-coach"

# --- Model Configuration ---
MODEL_CONFIG = {
    "industry_insights": {"temperature": 0.2, "max_tokens": 4096},
    "quiz": {"temperature": 0.7, "max_tokens": 4096},
    "improvement_tip": {"temperature": 0.5, "max_tokens": 256},
    "resume_improve": {"temperature": 0.5, "max_tokens": 1024},
    "cover_letter": {"temperature": 0.7, "max_tokens": 2048},
}

_FENCE_RE = re.compile(r"```(?:json|markdown)?\n?")


@lru_cache()
def get_llm_client() -> AsyncOpenAI:
    """OpenAI-compatible client pointed at OpenRouter, built on first use."""
    settings = get_settings()
    if not settings.openrouter_api_key:
        logger.error("OPENROUTER_API_KEY not found in environment variables or .env file.")
        raise GenerationError("Text generation is not configured")

    return AsyncOpenAI(
        base_url=settings.llm_base_url,
        api_key=settings.openrouter_api_key,
        default_headers={
            "HTTP-Referer": APP_URL,
            "X-Title": APP_NAME,
        },
    )


def strip_code_fences(text: str) -> str:
    """Remove ``` / ```json fence markers the model wraps around its answer."""
    return _FENCE_RE.sub("", text or "").strip()


def parse_json_response(text: str, response_model: Type[ModelT]) -> ModelT:
    """Decode a fenced JSON reply and validate it against ``response_model``."""
    cleaned = strip_code_fences(text)
    try:
        payload = json.loads(cleaned)
        return response_model.model_validate(payload)
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning(
            "LLM response did not match expected shape",
            response_model=response_model.__name__,
            error=str(exc),
        )
        raise LLMResponseDecodeError() from exc


async def call_llm(prompt: str, model_config: dict) -> str:
    """Send one prompt and return the text of the first choice."""
    client = get_llm_client()
    try:
        response = await client.chat.completions.create(
            model=get_settings().llm_model,
            messages=[{"role": "user", "content": prompt}],
            **model_config,
        )
    except Exception as exc:
        logger.error("LLM call failed", error=str(exc), exc_info=True)
        raise GenerationError() from exc

    if not response.choices:
        logger.error("LLM returned no choices", model=get_settings().llm_model)
        raise GenerationError()
    return response.choices[0].message.content or ""


# --- Prompt builders --- #


def build_industry_insights_prompt(industry: str) -> str:
    return f"""
Analyze the current state of the {industry} industry and provide insights in ONLY the following JSON format without any additional notes or explanations:
{{
  "salaryRanges": [
    {{ "role": "string", "min": number, "max": number, "median": number, "location": "string" }}
  ],
  "growthRate": number,
  "demandLevel": "HIGH" | "MEDIUM" | "LOW",
  "topSkills": ["skill1", "skill2"],
  "marketOutlook": "POSITIVE" | "NEUTRAL" | "NEGATIVE",
  "keyTrends": ["trend1", "trend2"],
  "recommendedSkills": ["skill1", "skill2"]
}}

IMPORTANT: Return ONLY the JSON. No additional text, notes, or markdown formatting.
Include at least 5 common roles for salary ranges.
Growth rate should be a percentage.
Include at least 5 skills and trends.
""".strip()


def build_quiz_prompt(industry: Optional[str], skills: Optional[List[str]]) -> str:
    expertise = f" with expertise in {', '.join(skills)}" if skills else ""
    return f"""
Generate 10 technical interview questions for a {industry} professional{expertise}.

Each question should be multiple choice with 4 options.

Return the response in this JSON format only, no additional text:
{{
  "questions": [
    {{
      "question": "string",
      "options": ["string", "string", "string", "string"],
      "correctAnswer": "string",
      "explanation": "string"
    }}
  ]
}}
""".strip()


def build_improvement_tip_prompt(industry: Optional[str], wrong_answers: List[QuestionResult]) -> str:
    wrong_questions_text = "\n\n".join(
        f'Question: "{q.question}"\nCorrect Answer: "{q.answer}"\nUser Answer: "{q.user_answer}"'
        for q in wrong_answers
    )
    return f"""
The user got the following {industry} technical interview questions wrong:

{wrong_questions_text}

Based on these mistakes, provide a concise, specific improvement tip.
Focus on the knowledge gaps revealed by these wrong answers.
Keep the response under 2 sentences and make it encouraging.
Don't explicitly mention the mistakes, instead focus on what to learn/practice.
""".strip()


def build_resume_improvement_prompt(industry: Optional[str], current: str, section_type: str) -> str:
    return f"""
As an expert resume writer, improve the following {section_type} description for a {industry} professional.
Make it more impactful, quantifiable, and aligned with industry standards.
Current content: "{current}"

Requirements:
1. Use action verbs
2. Include metrics and results where possible
3. Highlight relevant technical skills
4. Keep it concise but detailed
5. Focus on achievements over responsibilities
6. Use industry-specific keywords

Format the response as a single paragraph without any additional text or explanations.
""".strip()


def build_cover_letter_prompt(
    *,
    job_title: str,
    company_name: str,
    job_description: str,
    industry: Optional[str],
    experience: Optional[int],
    skills: Optional[List[str]],
    bio: Optional[str],
) -> str:
    return f"""
Write a professional cover letter for a {job_title} position at {company_name}.

About the candidate:
- Industry: {industry}
- Years of Experience: {experience}
- Skills: {", ".join(skills or [])}
- Professional Background: {bio or ""}

Job Description:
{job_description}

Requirements:
1. Use a professional, enthusiastic tone
2. Highlight relevant skills and experience
3. Show understanding of the company's needs
4. Keep it concise (max 400 words)
5. Use proper business letter formatting in markdown
6. Include specific examples of achievements
7. Relate candidate's background to job requirements

Format the letter in markdown.
""".strip()


# --- Specific LLM Interaction Functions --- #


async def generate_industry_insights(industry: str) -> IndustryInsightData:
    """Ask the model for a structured market summary of ``industry``."""
    text = await call_llm(build_industry_insights_prompt(industry), MODEL_CONFIG["industry_insights"])
    insights = parse_json_response(text, IndustryInsightData)
    logger.info("Generated industry insights", industry=industry)
    return insights


async def generate_quiz_questions(industry: Optional[str], skills: Optional[List[str]]) -> List[QuizQuestion]:
    text = await call_llm(build_quiz_prompt(industry, skills), MODEL_CONFIG["quiz"])
    quiz = parse_json_response(text, QuizResponse)
    logger.info("Generated quiz", industry=industry, question_count=len(quiz.questions))
    return quiz.questions


async def generate_improvement_tip(industry: Optional[str], wrong_answers: List[QuestionResult]) -> str:
    text = await call_llm(
        build_improvement_tip_prompt(industry, wrong_answers), MODEL_CONFIG["improvement_tip"]
    )
    return text.strip()


async def improve_resume_section(industry: Optional[str], current: str, section_type: str) -> str:
    text = await call_llm(
        build_resume_improvement_prompt(industry, current, section_type), MODEL_CONFIG["resume_improve"]
    )
    return text.strip()


async def generate_cover_letter(**prompt_fields) -> str:
    """Free-text markdown letter; see ``build_cover_letter_prompt`` for fields."""
    text = await call_llm(build_cover_letter_prompt(**prompt_fields), MODEL_CONFIG["cover_letter"])
    return strip_code_fences(text)
