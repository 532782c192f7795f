"""Persisted pattern rules for recognizing card payoff descriptions."""

import json
import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Protocol

from charge_recon.models import (
    PATTERN_CONTAINS,
    PATTERN_REGEX,
    PatternRule,
    TransactionLine,
)

logger = logging.getLogger(__name__)

PATTERNS_FILENAME = "credit_charge_patterns.json"

# Seed rules written to a fresh patterns file. Empty so that nothing is
# recognized by description until the user adds a rule.
BASE_PATTERNS: tuple[str, ...] = ()

# Card issuer names known to appear on bank statements for card payoffs
KNOWN_CREDIT_CHARGE_DESCRIPTIONS: tuple[str, ...] = ("מקס",)


class PatternDirectory(Protocol):
    """Minimal file capability used to persist the pattern rules."""

    def read_file(self, name: str) -> bytes:
        """Return file content; raise FileNotFoundError/OSError if unavailable."""
        ...

    def write_file(self, name: str, data: bytes) -> None:
        """Write file content; raise OSError on failure."""
        ...


class LocalDirectory:
    """PatternDirectory backed by a directory on the local file system."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def read_file(self, name: str) -> bytes:
        return (self.path / name).read_bytes()

    def write_file(self, name: str, data: bytes) -> None:
        self.path.mkdir(parents=True, exist_ok=True)
        (self.path / name).write_bytes(data)


def _seed_rules() -> list[PatternRule]:
    return [PatternRule(value=v, kind=PATTERN_CONTAINS) for v in BASE_PATTERNS]


def _encode(rules: list[PatternRule]) -> bytes:
    return (json.dumps([r.to_dict() for r in rules], indent=2, ensure_ascii=False) + "\n").encode(
        "utf-8"
    )


def load_pattern_rules(directory: PatternDirectory | None) -> list[PatternRule]:
    """Load pattern rules, seeding a new rules file if none can be read.

    Never raises: an unreadable file is replaced by the seed rules, and a
    failed seed write falls back to the seed rules in memory.

    Args:
        directory: Directory capability holding the rules file (optional)

    Returns:
        List of valid PatternRule objects, in file order
    """
    if directory is None:
        return _seed_rules()

    try:
        data = json.loads(directory.read_file(PATTERNS_FILENAME).decode("utf-8"))
    except (OSError, UnicodeDecodeError, ValueError) as e:
        logger.info("Pattern file unavailable (%s), seeding %s", e, PATTERNS_FILENAME)
        seed = _seed_rules()
        try:
            directory.write_file(PATTERNS_FILENAME, _encode(seed))
        except OSError as write_err:
            logger.warning("Could not write %s: %s", PATTERNS_FILENAME, write_err)
        return seed

    if not isinstance(data, list):
        logger.warning("%s does not hold a list, using seed rules", PATTERNS_FILENAME)
        return _seed_rules()

    rules: list[PatternRule] = []
    for entry in data:
        rule = PatternRule.from_dict(entry)
        if rule is None:
            logger.debug("Dropping invalid pattern entry: %r", entry)
            continue
        rules.append(rule)
    return rules


def save_pattern_rules(directory: PatternDirectory, rules: list[PatternRule]) -> None:
    """Persist the rule list, replacing the existing file."""
    directory.write_file(PATTERNS_FILENAME, _encode(rules))


def add_pattern_rule(
    directory: PatternDirectory,
    value: str,
    kind: str = PATTERN_CONTAINS,
) -> list[PatternRule]:
    """
    Append a rule to the persisted list.

    Args:
        directory: Directory capability holding the rules file
        value: Substring or regular expression to match
        kind: "contains" or "regex"

    Returns:
        The updated rule list

    Raises:
        ValueError: If the value is blank, the kind is unknown or the
            regular expression does not compile
    """
    value = value.strip()
    if not value:
        raise ValueError("Pattern value must not be empty")
    if kind not in (PATTERN_CONTAINS, PATTERN_REGEX):
        raise ValueError(f"Unknown pattern type: {kind}")
    if kind == PATTERN_REGEX:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"Invalid regular expression {value!r}: {e}") from e

    rules = load_pattern_rules(directory)
    rule = PatternRule(value=value, kind=kind)
    if rule not in rules:
        rules.append(rule)
        save_pattern_rules(directory, rules)
    return rules


def compile_pattern_rules(rules: list[PatternRule]) -> list[re.Pattern[str]]:
    """Compile active rules, silently dropping blank and invalid ones."""
    compiled = []
    for rule in rules:
        pattern = rule.compile()
        if pattern is not None:
            compiled.append(pattern)
    return compiled


def is_known_credit_charge_description(
    description: str,
    known: tuple[str, ...] = KNOWN_CREDIT_CHARGE_DESCRIPTIONS,
) -> bool:
    """Check if a bank description names a known card issuer."""
    desc = description.strip().lower()
    if not desc:
        return False
    return any(k.lower() in desc for k in known)


@dataclass
class UnmatchedCreditCharge:
    """Bank line that looks like a card payoff but has no matching cycle."""

    line_id: str
    description: str
    amount: Decimal
    date: date
    is_known_description: bool


def detect_unmatched_credit_charges(
    lines: list[TransactionLine],
    known: tuple[str, ...] = KNOWN_CREDIT_CHARGE_DESCRIPTIONS,
) -> list[UnmatchedCreditCharge]:
    """
    Find bank payoffs whose card detail is missing.

    Reports unmatched bank expense lines that name a known card issuer.
    These keep counting as regular expenses; the result only drives a
    warning to the user.
    """
    unmatched: list[UnmatchedCreditCharge] = []
    for line in lines:
        if not line.is_bank_expense or line.is_payoff or line.neutral:
            continue
        if is_known_credit_charge_description(line.description, known):
            unmatched.append(
                UnmatchedCreditCharge(
                    line_id=line.id,
                    description=line.description,
                    amount=line.amount,
                    date=line.date,
                    is_known_description=True,
                )
            )
    return unmatched
