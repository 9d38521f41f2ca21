"""
LLM-backed component suggestions for build-a-bot.

The model is asked for a JSON object naming one component per category.
Its reply is untrusted: it is parsed and validated before anything is
looked up on the marketplace.
"""

import json
import logging
from typing import Any

import openai

from .config import LLMConfig
from .errors import GenerationError
from .models import REQUIRED_CATEGORIES, Bundle

logger = logging.getLogger(__name__)

_EXAMPLE_BUILD = {
    "CPU": "AMD Ryzen 5 3600",
    "GPU": "Gigabyte GeForce GTX 1660 SUPER OC",
    "Motherboard": "Asus PRIME B450M-K",
    "RAM": "Corsair Vengeance LPX 16GB",
    "PSU": "EVGA 600 W1",
    "CPU Cooler": "Cooler Master Hyper 212",
    "FAN": "Noctua NF-P12",
    "PC case": "NZXT H510",
}

SYSTEM_PROMPT = f"""You are an assistant helping to build PCs with a focus on speed, affordability, and reliability.
Base your choices on the components and prices currently sold in Kazakhstan, priced strictly in KZT, as listed on kaspi.kz.
Suggest components that are commonly available and offer good value for money.
Prefer newer, widely available models over older or niche products.
Put most of the budget into the GPU, then the CPU.
IMPORTANT: The build must closely match the user's budget. Do not comment on this.
IMPORTANT: Reply with JSON only, without code fences or any other text. Use each component type as a key and the component name as the value.
The response must include exactly these components: {", ".join(REQUIRED_CATEGORIES)}.
Example of the response:
{json.dumps(_EXAMPLE_BUILD, indent=2)}"""


def format_amount(amount: float) -> str:
    """Render a money amount without a trailing ``.0``."""
    if isinstance(amount, float) and amount.is_integer():
        return str(int(amount))
    return str(amount)


def build_initial_prompt(prompt: str, budget: float, currency: str = "KZT") -> str:
    """User message for the first suggestion."""
    return f"{prompt} The budget for this build is {format_amount(budget)} {currency}."


def build_adjustment_prompt(bundle: Bundle, budget: float, currency: str = "KZT") -> str:
    """
    Feedback message asking the model to repair a build.

    Names the missing categories and the priced components found so far.
    """
    total = format_amount(bundle.total_price)
    target = format_amount(budget)
    missing = ", ".join(bundle.missing) or "none"
    priced = bundle.describe_prices(currency) or "none"
    return (
        f"The following components were not found or the total price ({total} {currency}) "
        f"is not within 10% of the budget ({target} {currency}): {missing}. "
        f"Current components and prices: {priced}.\n"
        "Please suggest alternatives for the missing components and adjust the build "
        "to be closer to the budget while maintaining performance. "
        "STRICTLY: Provide your response in the same JSON format as before. "
        "Ensure the total cost does not exceed the budget and remains within 10% of the budget. "
        "Make sure every component is a real PC component."
    )


def parse_component_spec(text: str, require_all: bool = True) -> dict[str, Any]:
    """
    Parse the model's reply into a category -> component name mapping.

    Args:
        text: Raw reply text
        require_all: Demand every required category with a string value

    Raises:
        GenerationError: reply is not a JSON object, or is incomplete
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise GenerationError(f"Failed to parse JSON response from LLM: {e}") from e

    if not isinstance(data, dict):
        raise GenerationError(
            f"LLM response must be a JSON object, got {type(data).__name__}"
        )

    if require_all:
        missing = [key for key in REQUIRED_CATEGORIES if key not in data]
        if missing:
            raise GenerationError(
                f"LLM response is missing required components: {', '.join(missing)}"
            )
        not_strings = [key for key in REQUIRED_CATEGORIES if not isinstance(data[key], str)]
        if not_strings:
            raise GenerationError(
                f"LLM response has non-text component names: {', '.join(not_strings)}"
            )

    return data


def create_openai_client(config: LLMConfig) -> openai.AsyncOpenAI:
    """Create the async OpenAI client described by ``config``."""
    api_key = config.get_api_key()
    if not api_key and config.base_url:
        # Local OpenAI-compatible servers accept any key
        api_key = "unused"
    return openai.AsyncOpenAI(
        api_key=api_key,
        base_url=config.base_url,
        timeout=config.timeout_seconds,
    )


class ComponentAdvisor:
    """
    Asks a chat-completions model for PC components.

    Works with ``openai.AsyncOpenAI`` or any object exposing the same
    ``chat.completions.create`` coroutine.
    """

    def __init__(
        self,
        client: Any,
        model: str = "gpt-4o",
        system_prompt: str = SYSTEM_PROMPT,
        currency: str = "KZT",
    ):
        self.client = client
        self.model = model
        self.system_prompt = system_prompt
        self.currency = currency

    async def suggest(self, prompt: str, budget: float) -> tuple[str, dict[str, Any]]:
        """
        Ask for a complete build.

        Returns:
            (reply text, validated component mapping)
        """
        text = await self._complete(build_initial_prompt(prompt, budget, self.currency))
        return text, parse_component_spec(text, require_all=True)

    async def adjust(self, bundle: Bundle, budget: float) -> tuple[str, dict[str, Any]]:
        """
        Ask for replacements given the priced bundle so far.

        The reply may name any subset of categories.

        Returns:
            (reply text, component mapping)
        """
        feedback = build_adjustment_prompt(bundle, budget, self.currency)
        text = await self._complete(feedback)
        return text, parse_component_spec(text, require_all=False)

    async def _complete(self, user_message: str) -> str:
        messages = [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": user_message},
        ]
        logger.debug(f"Sending messages to LLM: {messages}")

        try:
            result = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
            )
        except openai.OpenAIError as e:
            raise GenerationError(f"LLM request failed: {e}") from e

        content = result.choices[0].message.content if result.choices else None
        if not content:
            raise GenerationError("LLM returned an empty response")

        logger.info(f"Received response from LLM:\n{content}")
        return content
