"""
airouter - Request Classifier

Decides whether a request should prefer the higher-capability (remote)
provider. Rules are evaluated in strict priority order, first match wins:

1. explicit task hint in the specialized-task set
2. force_remote override
3. trigger phrase in the message text
4. complexity score above threshold
5. code-related keywords
6. standard request

Pure and deterministic: no I/O, no clock, no randomness.
"""

from typing import Iterable, Optional, Tuple

from ..core.config import DEFAULT_SPECIALIZED_TASKS, DEFAULT_TRIGGER_PHRASES
from ..core.models import Classification, RequestContext, RoutingReason


TECHNICAL_TERMS: Tuple[str, ...] = (
    "algorithm",
    "architecture",
    "implementation",
    "optimization",
    "analysis",
    "framework",
    "methodology",
)

# Matched case-sensitively, as plain substrings
CODE_SYNTAX_TOKENS: Tuple[str, ...] = (
    "{", "}", "function", "class", "import", "const", "let", "var",
)

CODE_KEYWORDS: Tuple[str, ...] = (
    "function", "class", "import", "export", "const", "let", "var",
    "if (", "for (", "while (", "switch (", "try {", "catch (",
    "async function", "await ", "promise", "callback",
    "json", "api", "endpoint", "database", "sql",
    "react", "node", "javascript", "python", "java", "go", "rust",
)

# Score weights, in hundredths so thresholds compare exactly
LENGTH_BONUS = 20
LONG_TEXT_CHARS = 1000
VERY_LONG_TEXT_CHARS = 3000
TECHNICAL_TERM_WEIGHT = 10
QUESTION_BONUS = 20
QUESTION_MARK_LIMIT = 3
CODE_TOKEN_WEIGHT = 5
MAX_SCORE = 100
COMPLEXITY_THRESHOLD = 70


class RequestClassifier:
    """Classifies a request as specialized (prefer remote) or standard."""

    def __init__(
        self,
        specialized_tasks: Iterable[str] = DEFAULT_SPECIALIZED_TASKS,
        trigger_phrases: Iterable[str] = DEFAULT_TRIGGER_PHRASES,
        code_keywords: Iterable[str] = CODE_KEYWORDS,
    ):
        self.specialized_tasks = frozenset(specialized_tasks)
        # Ordered: the first phrase found is the one reported
        self.trigger_phrases: Tuple[str, ...] = tuple(p.lower() for p in trigger_phrases)
        self.code_keywords: Tuple[str, ...] = tuple(k.lower() for k in code_keywords)

    def classify(self, ctx: RequestContext) -> Classification:
        """Classify a request. Never raises."""
        if ctx.task_hint and ctx.task_hint in self.specialized_tasks:
            return Classification(True, RoutingReason.SPECIALIZED_TASK.tag(ctx.task_hint))

        if ctx.force_remote:
            return Classification(True, RoutingReason.FORCE_OVERRIDE.tag())

        text = ctx.text()

        phrase = self.find_trigger_phrase(text)
        if phrase is not None:
            return Classification(True, RoutingReason.KEYWORD_TRIGGER.tag(phrase))

        points = self._complexity_points(text)
        if points > COMPLEXITY_THRESHOLD:
            return Classification(True, RoutingReason.HIGH_COMPLEXITY.tag(f"{points / 100:.2f}"))

        if self.is_code_related(text):
            return Classification(True, RoutingReason.CODE_RELATED.tag())

        return Classification(False, RoutingReason.STANDARD.tag())

    def find_trigger_phrase(self, text: str) -> Optional[str]:
        lowered = text.lower()
        for phrase in self.trigger_phrases:
            if phrase in lowered:
                return phrase
        return None

    @staticmethod
    def complexity_score(text: str) -> float:
        """
        Heuristic complexity in [0, 1].

        - +0.2 over 1000 chars, another +0.2 over 3000 chars
        - +0.1 per technical term present
        - +0.2 for more than 3 question marks
        - +0.05 per code-syntax token present
        """
        return RequestClassifier._complexity_points(text) / 100

    @staticmethod
    def _complexity_points(text: str) -> int:
        points = 0
        if len(text) > LONG_TEXT_CHARS:
            points += LENGTH_BONUS
        if len(text) > VERY_LONG_TEXT_CHARS:
            points += LENGTH_BONUS

        lowered = text.lower()
        points += TECHNICAL_TERM_WEIGHT * sum(1 for term in TECHNICAL_TERMS if term in lowered)

        if text.count("?") > QUESTION_MARK_LIMIT:
            points += QUESTION_BONUS

        points += CODE_TOKEN_WEIGHT * sum(1 for token in CODE_SYNTAX_TOKENS if token in text)

        return min(points, MAX_SCORE)

    def is_code_related(self, text: str) -> bool:
        """Case-insensitive substring match, so "go" also hits "good"."""
        lowered = text.lower()
        return any(keyword in lowered for keyword in self.code_keywords)
