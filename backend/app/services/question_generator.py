"""Multiple-choice question generation through an LLM chat completion"""

import json
from typing import Optional

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from backend.app.core.config import settings
from backend.app.core.exceptions import QuestionGenerationException
from backend.app.core.logging import get_logger
from backend.app.schemas.assessment import GeneratedQuestionSet

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are an expert educational content creator specializing in creating multiple-choice questions.
Generate {num_questions} {difficulty} multiple-choice questions about {topic}.
For each question:
1. Provide a clear question text
2. Include exactly 4 answer options
3. Indicate which option is correct as a 0-based index
4. Include a brief explanation of why the answer is correct

Respond with JSON only, in this structure:
{{
  "questions": [
    {{
      "text": "question text here",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correct_answer": 0,
      "explanation": "explanation of the correct answer"
    }}
  ]
}}"""


def strip_code_fences(content: str) -> str:
    """Return the JSON inside a Markdown code fence, or the text unchanged"""
    if "```json" in content:
        return content.split("```json", 1)[1].split("```", 1)[0].strip()
    if "```" in content:
        return content.split("```", 1)[1].split("```", 1)[0].strip()
    return content.strip()


def parse_questions(content: str) -> GeneratedQuestionSet:
    """
    Parse and validate model output

    Raises:
        QuestionGenerationException: If the output is not the expected JSON
    """
    try:
        payload = json.loads(strip_code_fences(content))
        return GeneratedQuestionSet.model_validate(payload)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Failed to parse generated questions: {str(e)}")
        raise QuestionGenerationException(
            "Failed to parse AI-generated questions",
            details={"reason": str(e)},
        )


class QuestionGenerator:
    """Generates assessment questions with the OpenAI chat completions API"""

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not settings.OPENAI_API_KEY:
                raise QuestionGenerationException("OpenAI API key not configured")
            self._client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        return self._client

    async def generate(self, topic: str, difficulty: Optional[str] = None, num_questions: int = 5) -> GeneratedQuestionSet:
        """
        Generate questions about ``topic``

        Args:
            topic: Subject of the questions
            difficulty: Free-form level, e.g. "beginner"
            num_questions: How many questions to ask for

        Returns:
            Validated questions

        Raises:
            QuestionGenerationException: No API key, API failure or unusable output
        """
        client = self.client
        level = difficulty or ""
        logger.info(f"Generating {num_questions} {level or 'standard'} questions on topic: {topic}")

        try:
            response = await client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=[
                    {
                        "role": "system",
                        "content": SYSTEM_PROMPT.format(num_questions=num_questions, difficulty=level, topic=topic),
                    },
                    {
                        "role": "user",
                        "content": f"Generate {num_questions} {level} multiple-choice questions about {topic}. Return only the JSON.",
                    },
                ],
                temperature=settings.OPENAI_TEMPERATURE,
            )
        except OpenAIError as e:
            logger.error(f"OpenAI API error: {str(e)}")
            raise QuestionGenerationException("Error from OpenAI API", details={"reason": str(e)})

        content = response.choices[0].message.content or ""
        return parse_questions(content)


def get_question_generator() -> QuestionGenerator:
    """Dependency returning a question generator"""
    return QuestionGenerator()
