"""AI analyzer interface and implementations."""

import json
import re
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from openai import AsyncOpenAI
from rich.console import Console
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from ..errors import ExternalAPIError
from ..models.analysis import LOW_COST, MODERATE, RawAnalysis
from .errors import to_external_api_error

console = Console()

SERVICE_NAME = "OpenAI"

# Characters of article text sent per mode (~4 chars per token)
MAX_CONTENT_CHARS = {LOW_COST: 4000, MODERATE: 8000}

_PROMPT_INJECTION_PATTERNS = [
    re.compile(r"ignore (all )?(previous|prior|above) instructions", re.IGNORECASE),
    re.compile(r"disregard (all )?(previous|prior|above) instructions", re.IGNORECASE),
    re.compile(r"ignora (todas )?las instrucciones (anteriores|previas)", re.IGNORECASE),
    re.compile(r"you are now [^.\n]{0,80}", re.IGNORECASE),
    re.compile(r"^\s*(system|assistant)\s*:", re.IGNORECASE | re.MULTILINE),
]

SYSTEM_PROMPT = """Eres un analista de medios. Evalúas SOLO el texto entre <ARTICLE> y </ARTICLE>.
No inventes hechos externos. Responde únicamente con un objeto JSON con las claves:
summary, biasRaw (-10..10), biasScoreNormalized (0..1), biasType (encuadre|omision|lenguaje|seleccion|ninguno),
biasIndicators (citas literales del texto), explanation, clickbaitScore (0..100),
reliabilityScore (0..100), traceabilityScore (0..100), sentiment (positive|negative|neutral),
mainTopics (máx 3), factCheck {claims, verdict (SupportedByArticle|NotSupportedByArticle|InsufficientEvidenceInArticle), reasoning},
factualityStatus (no_determinable|plausible_but_unverified), evidence_needed, should_escalate,
articleLeaning (progresista|conservadora|extremista|neutral|indeterminada), biasComment, reliabilityComment, category."""

MODE_INSTRUCTIONS = {
    LOW_COST: "Modo low_cost: respuestas breves, máximo 3 claims y comentarios de una frase.",
    MODERATE: "Modo moderate: analiza el texto completo, hasta 5 claims y comentarios justificados con citas.",
}


def sanitize_input(text: str) -> str:
    """Neutralize prompt-injection phrases and article delimiters inside untrusted text."""
    sanitized = (text or "").replace("\r\n", "\n").replace("\x00", "")
    sanitized = re.sub(r"</ARTICLE>", r"<\\/ARTICLE>", sanitized, flags=re.IGNORECASE)
    sanitized = re.sub(r"<ARTICLE>", "<ARTICLE_ESCAPED>", sanitized, flags=re.IGNORECASE)
    for pattern in _PROMPT_INJECTION_PATTERNS:
        sanitized = pattern.sub("[blocked_prompt_injection_pattern]", sanitized)
    return re.sub(r"\n{4,}", "\n\n\n", sanitized).strip()


def select_content(content: str, mode: str) -> str:
    """Keep head and tail of long articles within the mode's character budget."""
    limit = MAX_CONTENT_CHARS.get(mode, MAX_CONTENT_CHARS[LOW_COST])
    if len(content) <= limit:
        return content
    head_chars = int(limit * 0.7)
    tail_chars = limit - head_chars - 32
    return (
        f"{content[:head_chars].rstrip()}\n\n[... {len(content) - limit} caracteres omitidos ...]\n\n"
        f"{content[-tail_chars:].lstrip()}"
    )


def parse_analysis_response(text: Optional[str], mode: str) -> RawAnalysis:
    """Extract the JSON object from a model reply and validate it leniently."""
    clean = re.sub(r"```(?:json)?", "", text or "").strip()
    match = re.search(r"\{.*\}", clean, re.DOTALL)
    if not match:
        raise ExternalAPIError(SERVICE_NAME, "Invalid response format: no JSON found", 502)

    try:
        payload = json.loads(match.group(0))
    except ValueError as e:
        raise ExternalAPIError(SERVICE_NAME, f"Invalid JSON in analysis response: {e}", 502, cause=e)

    raw = RawAnalysis.from_payload(payload)
    if not raw.summary or not raw.summary.strip():
        raise ExternalAPIError(SERVICE_NAME, "Analysis response has no summary", 502)
    return raw.model_copy(update={"analysis_mode_used": mode})


class AIAnalyzer(ABC):
    """Abstract base class for AI analyzers."""

    @abstractmethod
    async def analyze_article(
        self,
        title: str,
        content: str,
        source: str,
        language: str,
        mode: str = LOW_COST,
    ) -> RawAnalysis:
        """
        Produce a raw trust analysis of an article.

        Args:
            title: Article title
            content: Text to analyze (full text or title+description fallback)
            source: Publishing outlet
            language: Article language code
            mode: low_cost or moderate

        Returns:
            Untrusted analysis; callers must calibrate it

        Raises:
            ExternalAPIError: the provider failed
        """
        pass

    @abstractmethod
    def get_usage_stats(self) -> Dict:
        """Get usage statistics."""
        pass


class OpenAIAnalyzer(AIAnalyzer):
    """OpenAI implementation of the AI analyzer."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        max_attempts: int = 3,
        initial_backoff: float = 1.0,
        timeout: float = 60.0,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        """
        Initialize OpenAI analyzer.

        Args:
            api_key: OpenAI API key
            model: Model name to use
            base_url: Custom base URL (OpenAI-compatible servers, tests)
            max_attempts: Attempts per analysis when the error is transient
            initial_backoff: First retry delay in seconds, doubled each attempt
            timeout: Request timeout in seconds
            client: Pre-built client (tests)
        """
        self.client = client or AsyncOpenAI(
            api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0
        )
        self.model = model
        self.max_attempts = max_attempts
        self.initial_backoff = initial_backoff
        self.total_tokens = 0
        self.prompt_tokens = 0
        self.completion_tokens = 0
        self.api_calls = 0

        # Token cost estimates (per 1K tokens)
        self.cost_per_1k_tokens = {
            "gpt-4o": {"input": 0.005, "output": 0.015},
            "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
            "gpt-4.1-mini": {"input": 0.0004, "output": 0.0016},
        }

    def _build_messages(self, title: str, content: str, source: str, language: str, mode: str) -> List[Dict]:
        article = (
            f"Título: {sanitize_input(title)}\n"
            f"Fuente: {sanitize_input(source)}\n"
            f"Idioma: {language}\n\n"
            f"<ARTICLE>\n{select_content(sanitize_input(content), mode)}\n</ARTICLE>"
        )
        return [
            {"role": "system", "content": f"{SYSTEM_PROMPT}\n{MODE_INSTRUCTIONS[mode]}"},
            {"role": "user", "content": article},
        ]

    @staticmethod
    def _is_transient(error: BaseException) -> bool:
        return to_external_api_error(error, SERVICE_NAME).retryable

    async def _complete(self, messages: List[Dict], mode: str) -> str:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.initial_backoff, min=self.initial_backoff, max=30),
            retry=retry_if_exception(self._is_transient),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    console.print(
                        f"[yellow]   {SERVICE_NAME} transient error, retry "
                        f"{attempt.retry_state.attempt_number}/{self.max_attempts}[/yellow]"
                    )
                self.api_calls += 1
                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=0.2,
                    max_tokens=700 if mode == LOW_COST else 1400,
                    response_format={"type": "json_object"},
                )

                if response.usage:
                    self.total_tokens += response.usage.total_tokens
                    self.prompt_tokens += response.usage.prompt_tokens
                    self.completion_tokens += response.usage.completion_tokens

                return response.choices[0].message.content or ""
        return ""

    async def analyze_article(
        self,
        title: str,
        content: str,
        source: str,
        language: str,
        mode: str = LOW_COST,
    ) -> RawAnalysis:
        """Analyze article using OpenAI."""
        if mode not in MODE_INSTRUCTIONS:
            mode = LOW_COST
        if not content or not content.strip():
            raise ExternalAPIError(SERVICE_NAME, "Content is empty, nothing to analyze", 400)

        messages = self._build_messages(title, content, source, language, mode)
        try:
            text = await self._complete(messages, mode)
        except ExternalAPIError:
            raise
        except Exception as e:
            mapped = to_external_api_error(e, SERVICE_NAME)
            console.print(f"[red]   {mapped}[/red]")
            raise mapped from e

        return parse_analysis_response(text, mode)

    def get_usage_stats(self) -> Dict:
        """Get usage statistics."""
        estimated_cost = 0.0
        if self.model in self.cost_per_1k_tokens:
            rates = self.cost_per_1k_tokens[self.model]
            estimated_cost = (
                (self.prompt_tokens / 1000) * rates["input"]
                + (self.completion_tokens / 1000) * rates["output"]
            )

        return {
            "total_tokens": self.total_tokens,
            "api_calls": self.api_calls,
            "estimated_cost": estimated_cost,
            "model": self.model,
        }


class MockAIAnalyzer(AIAnalyzer):
    """Deterministic analyzer for tests and offline runs."""

    def __init__(self, response: Optional[Dict] = None) -> None:
        """Initialize mock analyzer with an optional canned payload."""
        self.response = response
        self.calls: List[Dict] = []

    async def analyze_article(
        self,
        title: str,
        content: str,
        source: str,
        language: str,
        mode: str = LOW_COST,
    ) -> RawAnalysis:
        """Return the canned payload, or a generic one built from the title."""
        self.calls.append({"title": title, "content": content, "source": source, "mode": mode})

        payload = self.response or {
            "summary": f"Mock summary of '{title[:50]}'",
            "biasRaw": 0,
            "biasScoreNormalized": 0,
            "biasType": "ninguno",
            "biasIndicators": [],
            "clickbaitScore": 10,
            "reliabilityScore": 70,
            "traceabilityScore": 60,
            "sentiment": "neutral",
            "mainTopics": [],
            "factCheck": {"claims": [], "verdict": "InsufficientEvidenceInArticle", "reasoning": ""},
            "factualityStatus": "plausible_but_unverified",
            "evidence_needed": [],
            "should_escalate": False,
        }
        raw = RawAnalysis.from_payload(payload)
        return raw.model_copy(update={"analysis_mode_used": mode})

    def get_usage_stats(self) -> Dict:
        """Get mock usage statistics."""
        return {
            "total_tokens": len(self.calls) * 100,
            "api_calls": len(self.calls),
            "estimated_cost": 0.0,
            "model": "mock",
        }


def build_analyzer(llm_config: Dict) -> AIAnalyzer:
    """Get the configured analyzer, falling back to the mock without credentials."""
    if llm_config.get("provider") == "openai":
        api_key = llm_config.get("api_key")
        if not api_key:
            console.print("[yellow]Warning: No OpenAI API key found. Using mock analyzer.[/yellow]")
            return MockAIAnalyzer()

        return OpenAIAnalyzer(
            api_key=api_key,
            model=llm_config.get("model", "gpt-4o-mini"),
            base_url=llm_config.get("base_url"),
            max_attempts=llm_config.get("max_attempts", 3),
            initial_backoff=llm_config.get("initial_backoff", 1.0),
            timeout=llm_config.get("timeout", 60.0),
        )

    if llm_config.get("provider") != "mock":
        console.print("[yellow]Warning: Unknown LLM provider. Using mock analyzer.[/yellow]")
    return MockAIAnalyzer()
