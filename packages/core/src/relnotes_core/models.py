"""Shared data models.

Kept free of any I/O so both the git wrapper and the GitHub helpers can
produce the same record type, and the analyzer and note synthesizer can
consume it without knowing where a commit came from.
"""

from __future__ import annotations

from dataclasses import dataclass

SHORT_ID_LENGTH = 7


@dataclass(frozen=True)
class CommitRecord:
    """A single commit, from either `git log` or the pull request API."""

    full_id: str
    subject: str
    author_name: str = ""
    author_email: str = ""
    date: str = ""  # ISO-8601 (git log uses --date=short)
    message: str = ""  # full message; empty means "same as subject"
    url: str = ""

    @property
    def short_id(self) -> str:
        return self.full_id[:SHORT_ID_LENGTH]

    @property
    def text(self) -> str:
        return self.message or self.subject

    @property
    def first_line(self) -> str:
        lines = self.text.splitlines()
        return lines[0].strip() if lines else ""

    def to_dict(self) -> dict:
        return {
            "sha": self.full_id,
            "short_sha": self.short_id,
            "message": self.text,
            "author": self.author_name,
            "email": self.author_email,
            "date": self.date,
            "url": self.url,
        }
