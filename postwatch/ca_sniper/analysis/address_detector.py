"""
Content classifier for posts.

Pulls Solana mint addresses, BSC contract addresses, launch-related
keywords and links out of a post's text. Pure: no state beyond the
keyword vocabulary, no I/O.

A Solana candidate is any 32-44 character run from the base58 alphabet,
but only candidates that decode to exactly 32 bytes are real public keys.
Plenty of ordinary base58-looking strings (long hashtags, slugs) do not.
"""

from __future__ import annotations

import re
from typing import Iterable

import base58

from postwatch.ca_sniper.signals.signal_schema import Finding

SOLANA_ADDRESS_PATTERN = re.compile(r"\b[1-9A-HJ-NP-Za-km-z]{32,44}\b")
BSC_ADDRESS_PATTERN = re.compile(r"\b0x[a-fA-F0-9]{40}\b")

URL_PATTERN = re.compile(
    r"https?://(?:www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
    r"[-a-zA-Z0-9()@:%_+.~#?&/=]*"
)
SHORT_LINK_PATTERN = re.compile(r"https://t\.co/[a-zA-Z0-9]+")

SOLANA_PUBKEY_LENGTH = 32

# Acquisition / launch / deployment / liquidity vocabulary
DEFAULT_KEYWORDS: tuple[str, ...] = (
    r"pump",
    r"launch",
    r"token",
    r"contract",
    r"mint(?:ing|ed)?",
    r"deploy(?:ing|ed)?",
    r"live",
    r"ca",
    r"sol",
    r"bsc",
    r"airdrop",
    r"presale",
    r"liquidity",
    r"dex",
)


def _unique(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


def is_valid_solana_address(candidate: str) -> bool:
    """True if the string base58-decodes to exactly 32 bytes."""
    try:
        return len(base58.b58decode(candidate)) == SOLANA_PUBKEY_LENGTH
    except ValueError:
        return False


def is_valid_bsc_address(candidate: str) -> bool:
    return re.fullmatch(r"0x[a-fA-F0-9]{40}", candidate) is not None


class AddressDetector:
    """
    Classifies post text into a Finding.

    Extra watch keywords (matched case-insensitively, and not inside a
    longer word) are appended to the default vocabulary. They may start
    or end with symbols such as `$pepe`.
    """

    def __init__(self, extra_keywords: Iterable[str] = ()):
        terms = list(DEFAULT_KEYWORDS) + [
            re.escape(k.strip().lower()) for k in extra_keywords if k.strip()
        ]
        self.keyword_pattern = re.compile(
            r"(?<!\w)(?:" + "|".join(terms) + r")(?!\w)", re.IGNORECASE
        )

    def extract_solana_addresses(self, text: str) -> list[str]:
        matches = SOLANA_ADDRESS_PATTERN.findall(text)
        return _unique(m for m in matches if is_valid_solana_address(m))

    def extract_bsc_addresses(self, text: str) -> list[str]:
        return _unique(BSC_ADDRESS_PATTERN.findall(text))

    def extract_keywords(self, text: str) -> list[str]:
        return _unique(m.group(0).lower() for m in self.keyword_pattern.finditer(text))

    def extract_links(self, text: str) -> list[str]:
        urls = [m.group(0) for m in URL_PATTERN.finditer(text)]
        urls.extend(SHORT_LINK_PATTERN.findall(text))
        return _unique(urls)

    def classify(self, text: str) -> Finding:
        """Analyze one post's text. Never raises; empty text yields no signal."""
        text = text or ""
        solana = self.extract_solana_addresses(text)
        bsc = self.extract_bsc_addresses(text)
        keywords = self.extract_keywords(text)
        return Finding(
            has_signal=bool(solana or bsc or keywords),
            solana_addresses=solana,
            bsc_addresses=bsc,
            keywords=keywords,
            links=self.extract_links(text),
        )


_default_detector = AddressDetector()


def classify(text: str) -> Finding:
    """Classify text with the default vocabulary."""
    return _default_detector.classify(text)
