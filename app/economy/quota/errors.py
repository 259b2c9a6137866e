from __future__ import annotations


class QuotaError(Exception):
    pass


class ChatLimitReachedError(QuotaError):
    def __init__(self, *, current_count: int, limit: int, tier: str, next_tier: str | None) -> None:
        super().__init__(f"chat limit {limit} reached on tier {tier}")
        self.current_count = current_count
        self.limit = limit
        self.tier = tier
        self.next_tier = next_tier


class PersonaNotFoundError(QuotaError):
    pass


class PersonaAccessDeniedError(QuotaError):
    def __init__(self, *, tier: str, next_tier: str | None) -> None:
        super().__init__(f"tier {tier} has no access to exclusive personas")
        self.tier = tier
        self.next_tier = next_tier


class ChatNotFoundError(QuotaError):
    pass


class MessageNotFoundError(QuotaError):
    pass


class AlreadyUnlockedError(QuotaError):
    pass
