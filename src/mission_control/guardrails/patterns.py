"""Pluggable regex matcher + rewrite rules shared by the text guardrails."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PatternRule:
    name: str
    pattern: re.Pattern[str]
    replacement: str

    @classmethod
    def compile(cls, name: str, expr: str, replacement: str, flags: int = 0) -> PatternRule:
        return cls(name=name, pattern=re.compile(expr, flags), replacement=replacement)

    def detect(self, text: str) -> bool:
        return self.pattern.search(text) is not None

    def rewrite(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


def matching_rules(rules: Iterable[PatternRule], text: str) -> list[PatternRule]:
    return [rule for rule in rules if rule.detect(text)]


def rewrite_all(rules: Iterable[PatternRule], text: str) -> str:
    working = text
    for rule in rules:
        working = rule.rewrite(working)
    return working
