"""Deterministic difficulty/category/source heuristics for generated cards."""

from __future__ import annotations

import re

from app.modules.flashcards.models import UNCATEGORIZED, Difficulty

MAX_CATEGORY_LEN = 40

_WORD_RE = re.compile(r"[a-z0-9]+")
_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+|\n+")
_STOPWORDS = frozenset(
    "a an and are as at be by for from in is it of on or the to was were what which who with".split()
)

_DIFFICULTY_ALIASES: dict[str, Difficulty] = {
    "easy": Difficulty.EASY,
    "simple": Difficulty.EASY,
    "basic": Difficulty.EASY,
    "beginner": Difficulty.EASY,
    "low": Difficulty.EASY,
    "medium": Difficulty.MEDIUM,
    "moderate": Difficulty.MEDIUM,
    "intermediate": Difficulty.MEDIUM,
    "normal": Difficulty.MEDIUM,
    "hard": Difficulty.HARD,
    "difficult": Difficulty.HARD,
    "advanced": Difficulty.HARD,
    "challenging": Difficulty.HARD,
    "expert": Difficulty.HARD,
    "high": Difficulty.HARD,
}

_EASY_STEMS = ("what is", "what are", "who", "when", "where", "define", "name", "which")
_HARD_STEMS = (
    "why",
    "how",
    "explain",
    "compare",
    "contrast",
    "analyze",
    "analyse",
    "evaluate",
    "justify",
    "derive",
    "prove",
    "predict",
)

CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "biology": (
        "cell", "cells", "mitochondria", "dna", "rna", "protein", "enzyme",
        "organism", "photosynthesis", "gene", "genes", "evolution", "species",
        "tissue", "membrane", "chlorophyll", "ribosome", "nucleus",
    ),
    "chemistry": (
        "atom", "atoms", "molecule", "molecules", "reaction", "acid", "base",
        "bond", "compound", "element", "electron", "ion", "catalyst", "ph",
        "oxidation", "periodic",
    ),
    "physics": (
        "force", "energy", "velocity", "acceleration", "mass", "gravity",
        "momentum", "quantum", "wave", "newton", "friction", "voltage",
        "current", "relativity",
    ),
    "mathematics": (
        "equation", "theorem", "integral", "derivative", "matrix", "vector",
        "algebra", "geometry", "probability", "function", "prime", "calculus",
        "polynomial",
    ),
    "computer science": (
        "algorithm", "algorithms", "data structure", "compiler", "database",
        "network", "software", "programming", "recursion", "complexity",
        "cpu", "memory", "array",
    ),
    "history": (
        "war", "empire", "revolution", "century", "treaty", "dynasty", "king",
        "queen", "independence", "civilization", "ancient", "medieval",
    ),
    "geography": (
        "continent", "river", "mountain", "climate", "ocean", "country",
        "capital", "latitude", "longitude", "plate", "volcano",
    ),
    "economics": (
        "market", "supply", "demand", "inflation", "gdp", "price", "trade",
        "monetary", "fiscal", "tax", "unemployment",
    ),
    "literature": (
        "novel", "poem", "poetry", "author", "character", "metaphor",
        "narrative", "shakespeare", "theme", "protagonist",
    ),
}


def _words(text: str) -> list[str]:
    return _WORD_RE.findall(text.lower())


def normalize_difficulty(label: str | None) -> Difficulty | None:
    if not label:
        return None
    return _DIFFICULTY_ALIASES.get(label.strip().lower())


def estimate_difficulty(question: str, answer: str) -> Difficulty:
    """Guess difficulty from question stem and answer length."""
    q = question.strip().lower()
    answer_words = len(_words(answer))
    if q.startswith(_HARD_STEMS) or answer_words > 40:
        return Difficulty.HARD
    if q.startswith(_EASY_STEMS) and answer_words <= 12:
        return Difficulty.EASY
    return Difficulty.MEDIUM


def classify_difficulty(
    question: str, answer: str, provider_label: str | None = None
) -> Difficulty:
    return normalize_difficulty(provider_label) or estimate_difficulty(question, answer)


def normalize_category(label: str | None) -> str | None:
    if not label:
        return None
    cleaned = " ".join(re.sub(r"[^\w\s&/-]", " ", label.lower()).split())
    if not cleaned:
        return None
    return cleaned[:MAX_CATEGORY_LEN].rstrip()


def guess_category(text: str) -> str:
    """Pick the topic whose keywords occur most often; ties go to table order."""
    words = _words(text)
    if not words:
        return UNCATEGORIZED
    joined = " ".join(words)
    best, best_hits = UNCATEGORIZED, 0
    for category, keywords in CATEGORY_KEYWORDS.items():
        hits = 0
        for kw in keywords:
            if " " in kw:
                hits += joined.count(kw)
            else:
                hits += words.count(kw)
        if hits > best_hits:
            best, best_hits = category, hits
    return best


def classify_category(
    question: str,
    answer: str,
    provider_label: str | None = None,
    subject: str | None = None,
) -> str:
    return (
        normalize_category(provider_label)
        or normalize_category(subject)
        or guess_category(f"{question} {answer}")
    )


def split_sentences(notes: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_RE.split(notes) if s and s.strip()]


def find_source_excerpt(question: str, answer: str, notes: str) -> str:
    """Return the notes sentence sharing the most words with the card."""
    card_words = set(_words(f"{question} {answer}")) - _STOPWORDS
    best, best_score = "", 0
    for sentence in split_sentences(notes):
        score = len(card_words & set(_words(sentence)))
        if score > best_score:
            best, best_score = sentence, score
    return best
