# =============================================================================
# core/auth_gate.py - Confirmation required before sending machines
# =============================================================================

import hmac
from typing import Callable, Optional, Protocol, Tuple

ChallengeResult = Tuple[bool, str]


class AuthGate(Protocol):
    def challenge(self) -> ChallengeResult: ...


class AllowAllGate:
    """Gate that always lets the send through"""

    def challenge(self) -> ChallengeResult:
        return True, "Authentication not required"


class ConsoleConfirmGate:
    """Asks the operator to type a confirmation word on the console"""

    def __init__(self, word: str = "send", prompt: Callable[[str], str] = input):
        self.word = word
        self.prompt = prompt

    def challenge(self) -> ChallengeResult:
        try:
            answer = self.prompt(f"Type '{self.word}' to confirm sending: ")
        except EOFError:
            return False, "Authentication failed."
        if answer.strip().lower() == self.word:
            return True, "Confirmed"
        return False, "Authentication failed."


class TokenGate:
    """Compares a presented token with the configured one"""

    def __init__(self, expected: Optional[str]):
        self.expected = expected
        self.presented: Optional[str] = None

    def with_token(self, presented: Optional[str]) -> 'TokenGate':
        gate = TokenGate(self.expected)
        gate.presented = presented
        return gate

    def challenge(self) -> ChallengeResult:
        if not self.expected:
            return False, "Authentication is not available on this server."
        if not self.presented or not hmac.compare_digest(
                self.presented.encode('utf-8'), self.expected.encode('utf-8')):
            return False, "Authentication failed."
        return True, "Authenticated"
