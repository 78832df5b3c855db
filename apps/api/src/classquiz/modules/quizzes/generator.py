"""
AI Quiz Generator

Generates and improves multiple-choice questions through LiteLLM's
acompletion(). API keys and endpoints come from settings and are passed
directly on each call:

- gpt-4o-mini, gpt-4o  -> OpenAI (OPENAI_API_KEY)
- deepseek-chat        -> DeepSeek (DEEPSEEK_API_KEY), as deepseek/deepseek-chat

Provider output is untrusted: anything that is not a JSON quiz of the
expected shape surfaces as AIResponseInvalidError.
"""

import json
import logging
import re
from typing import Any

import litellm
from litellm import acompletion
from pydantic import ValidationError

from classquiz.core.config import settings
from classquiz.core.exceptions import AIProviderError, AIResponseInvalidError, NotConfiguredError
from classquiz.modules.quizzes.schemas import AIModel, GeneratedQuestion, GeneratedQuiz
from classquiz.modules.schools.models import GradeLevel

logger = logging.getLogger(__name__)

QUESTIONS_PER_QUIZ = 10
CHOICES_PER_QUESTION = 4

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")

GENERATE_SYSTEM_PROMPT = (
    "You are an assistant that writes educational quizzes. "
    "Answer ONLY with valid JSON, without any other text."
)

IMPROVE_SYSTEM_PROMPT = (
    "You are an assistant that improves educational quizzes. "
    "Answer ONLY with valid JSON."
)

QUESTION_FORMAT = """{
  "question": "Question?",
  "choices": [
    {"id": "A", "text": "Answer A"},
    {"id": "B", "text": "Answer B"},
    {"id": "C", "text": "Answer C"},
    {"id": "D", "text": "Answer D"}
  ],
  "answer_keys": ["A"],
  "explanation": "Why the answer is correct"
}"""


def _strip_code_fences(content: str) -> str:
    return _CODE_FENCE.sub("", content.strip())


def _load_json(content: str | None) -> Any:
    if not content or not content.strip():
        raise AIResponseInvalidError("The AI provider returned an empty response.")
    try:
        return json.loads(_strip_code_fences(content))
    except json.JSONDecodeError as e:
        logger.warning(f"AI response is not valid JSON: {e}")
        raise AIResponseInvalidError() from e


def _check_questions(questions: list[GeneratedQuestion], expected_count: int) -> None:
    if len(questions) != expected_count:
        raise AIResponseInvalidError(
            f"Wrong number of questions: {len(questions)} instead of {expected_count}."
        )
    for index, question in enumerate(questions, start=1):
        if len(question.choices) != CHOICES_PER_QUESTION:
            raise AIResponseInvalidError(f"Question {index} has an invalid structure.")


def parse_quiz_payload(content: str | None) -> GeneratedQuiz:
    """
    Parse a generated quiz from raw provider content.

    Raises:
        AIResponseInvalidError: Not JSON, wrong structure, not exactly 10
            questions, or a question without exactly 4 choices
    """
    data = _load_json(content)
    try:
        quiz = GeneratedQuiz.model_validate(data)
    except ValidationError as e:
        logger.warning(f"AI quiz has an invalid structure: {e.error_count()} error(s)")
        raise AIResponseInvalidError("Invalid quiz structure received from the AI provider.") from e

    _check_questions(quiz.questions, QUESTIONS_PER_QUIZ)
    return quiz


def parse_questions_payload(content: str | None, expected_count: int) -> list[GeneratedQuestion]:
    """
    Parse a list of improved questions from raw provider content.

    Accepts either a bare JSON array or an object with a "questions" array.
    """
    data = _load_json(content)
    if isinstance(data, dict):
        data = data.get("questions")
    if not isinstance(data, list):
        raise AIResponseInvalidError("Expected a list of questions from the AI provider.")

    try:
        questions = [GeneratedQuestion.model_validate(item) for item in data]
    except ValidationError as e:
        raise AIResponseInvalidError("Invalid question structure received from the AI provider.") from e

    _check_questions(questions, expected_count)
    return questions


class QuizGenerator:
    """Client for the AI question-generation providers."""

    def __init__(self):
        self._configure_litellm()

    def _configure_litellm(self) -> None:
        litellm.set_verbose = False
        litellm.drop_params = True

    def _provider_params(self, model: AIModel) -> dict[str, Any]:
        """LiteLLM model name, credentials and sampling for a model."""
        if model == "deepseek-chat":
            if not settings.deepseek_api_key:
                raise NotConfiguredError("DEEPSEEK_API_KEY")
            # DeepSeek only accepts its default temperature
            return {
                "model": f"deepseek/{model}",
                "api_key": settings.deepseek_api_key,
                "api_base": settings.deepseek_base_url,
                "temperature": 1.0,
            }

        if not settings.openai_api_key:
            raise NotConfiguredError("OPENAI_API_KEY")
        return {
            "model": model,
            "api_key": settings.openai_api_key,
            "api_base": settings.openai_base_url,
            "temperature": 0.7,
        }

    async def _complete(self, model: AIModel, system_prompt: str, prompt: str) -> str | None:
        params = self._provider_params(model)

        try:
            response = await acompletion(
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=settings.ai_max_tokens,
                timeout=settings.ai_timeout_seconds,
                **params,
            )
        except Exception as e:
            status_code = getattr(e, "status_code", None)
            logger.error(f"AI provider ({model}) request failed: status={status_code}, error={e}")
            if status_code:
                raise AIProviderError(
                    f"The AI provider rejected the request (HTTP {status_code})."
                ) from e
            raise AIProviderError() from e

        try:
            return response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise AIResponseInvalidError("Unexpected completion format from the AI provider.") from e

    async def generate_quiz(
        self,
        lesson_text: str,
        grade_level: GradeLevel,
        model: AIModel = "gpt-4o-mini",
    ) -> GeneratedQuiz:
        """
        Generate a 10-question multiple-choice quiz from a lesson.

        Raises:
            NotConfiguredError: The provider's API key is missing
            AIProviderError: The provider call failed
            AIResponseInvalidError: The provider answered with an unusable quiz
        """
        prompt = f"""You are an expert teacher. Write a multiple-choice quiz of {QUESTIONS_PER_QUIZ} questions based on the lesson below, for pupils at grade level {grade_level.value}.

Lesson: {lesson_text}

Instructions:
- Exactly {QUESTIONS_PER_QUIZ} varied questions (comprehension, application, analysis)
- Each question has {CHOICES_PER_QUESTION} choices (A, B, C, D) and a single correct answer
- Randomize the position of the correct answer
- Progressive difficulty, suited to grade level {grade_level.value}
- Written in {settings.quiz_language}
- Add a short explanation for each correct answer

Answer ONLY with valid JSON in exactly this format:
{{
  "title": "Title without the word 'quiz'",
  "description": "Short description",
  "questions": [{QUESTION_FORMAT}]
}}"""

        content = await self._complete(model, GENERATE_SYSTEM_PROMPT, prompt)
        quiz = parse_quiz_payload(content)

        logger.info(f"Generated quiz '{quiz.title}' with {model}")
        return quiz

    async def improve_questions(
        self,
        questions: list[GeneratedQuestion],
        feedback: str,
        grade_level: GradeLevel,
        model: AIModel = "gpt-4o-mini",
    ) -> list[GeneratedQuestion]:
        """Rewrite questions according to teacher feedback, keeping their count."""
        current = json.dumps([q.model_dump() for q in questions], ensure_ascii=False, indent=2)
        prompt = f"""You are an expert teacher. Improve these quiz questions according to the feedback.

Current questions:
{current}

Feedback:
{feedback}

Grade level: {grade_level.value}

Instructions:
- Keep the same number of questions ({len(questions)})
- Apply the requested improvements
- Keep {CHOICES_PER_QUESTION} choices per question
- Written in {settings.quiz_language}

Answer ONLY with a valid JSON array of improved questions, each in this format:
{QUESTION_FORMAT}"""

        content = await self._complete(model, IMPROVE_SYSTEM_PROMPT, prompt)
        improved = parse_questions_payload(content, expected_count=len(questions))

        logger.info(f"Improved {len(improved)} question(s) with {model}")
        return improved


def get_quiz_generator() -> QuizGenerator:
    """FastAPI dependency providing the quiz generator."""
    return QuizGenerator()
