"""Domain entities for chat messages — framework-independent."""

from dataclasses import dataclass, field


@dataclass
class ChatMessage:
    """A single message in a chat conversation."""

    role: str  # "system" | "user" | "assistant"
    content: str = ""


@dataclass
class TokenUsage:
    """Token usage statistics from a completion."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def add(self, other: "TokenUsage") -> None:
        """Accumulate another usage record into this one."""
        self.prompt_tokens += other.prompt_tokens
        self.completion_tokens += other.completion_tokens
        self.total_tokens += other.total_tokens


@dataclass
class ChatCompletionResult:
    """Result from a chat completion call."""

    model: str
    content: str
    finish_reason: str  # "stop" | "length" | "error"
    usage: TokenUsage = field(default_factory=TokenUsage)
    provider: str = ""
    response_id: str = ""
