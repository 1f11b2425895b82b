"""Receptionist response generation."""
import logging
import random
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from receptionist.core.config import settings
from receptionist.services.agent.prompt import get_system_prompt
from receptionist.services.persona.intent import GENERAL_INTENT, analyze_intent
from receptionist.services.persona.moods import Mood
from receptionist.services.persona.phrases import AI_APOLOGY
from receptionist.services.persona.templates import TemplateResolver

logger = logging.getLogger(__name__)


class ResponderService:
    """Answers the caller from canned templates or an OpenAI chat completion."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        resolver: Optional[TemplateResolver] = None,
        rng: Optional[random.Random] = None,
        template_probability: Optional[float] = None,
        model: Optional[str] = None,
    ):
        if client is None and settings.openai_api_key:
            client = AsyncOpenAI(api_key=settings.openai_api_key)
        self.client = client
        self.rng = rng or random.Random()
        self.resolver = resolver or TemplateResolver(rng=self.rng)
        self.template_probability = (
            settings.template_probability
            if template_probability is None
            else template_probability
        )
        self.model = model or settings.openai_model

        if self.client is None:
            logger.info("[RESPONDER] Running without OpenAI (OPENAI_API_KEY not set)")

    @property
    def is_ai_enabled(self) -> bool:
        return self.client is not None

    async def generate_response(
        self,
        user_input: str,
        history: List[Dict[str, str]],
        mood: Mood,
        time_modifier: Optional[str] = None,
    ) -> str:
        """
        Generate the receptionist's reply.

        Args:
            user_input: What the caller just said
            history: Earlier turns as role/content dicts
            mood: Today's mood
            time_modifier: Optional time-of-day complaint

        Returns:
            Reply text. Never raises; failures become a canned apology.
        """
        try:
            intent = analyze_intent(user_input)
            if intent != GENERAL_INTENT and self.rng.random() > (1 - self.template_probability):
                logger.debug(f"[RESPONDER] Using template for intent '{intent}'")
                return self.resolver.response_for_intent(intent).text

            if not self.client:
                return self.resolver.response_for_intent(intent).text

            messages: List[Dict[str, Any]] = [
                {"role": "system", "content": get_system_prompt(mood, time_modifier)},
                *history,
                {"role": "user", "content": user_input},
            ]

            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=0.85,
                max_tokens=120,
                presence_penalty=0.6,
                frequency_penalty=0.3,
            )
            content = completion.choices[0].message.content
            if not content:
                return self.resolver.response_for_intent(intent).text
            return content.strip()

        except Exception as e:
            logger.error(
                f"[RESPONDER] Response generation failed - Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            return self.resolver.resolve(AI_APOLOGY).text
