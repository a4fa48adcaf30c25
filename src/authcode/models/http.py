"""Transport-neutral HTTP response."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class HttpResponse:
    status: int
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: str = ""

    def header(self, name: str) -> str | None:
        """Return the first header value matching ``name``, ignoring case."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None
