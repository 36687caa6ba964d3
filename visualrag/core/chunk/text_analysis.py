"""Token estimation, keyword extraction and summaries for chunk content."""

import math
import re
from collections import Counter
from typing import Iterable, List, Optional

import tiktoken

STOPWORDS = frozenset({
    "this", "that", "with", "have", "will", "from", "they", "been", "were",
    "there", "their", "them", "then", "than", "these", "those", "what", "when",
    "where", "which", "while", "would", "could", "should", "about", "into",
    "your", "also", "some", "such", "only", "over", "very", "more", "most",
})

NON_WORD_PATTERN = re.compile(r"[^\w\s]")
SENTENCE_PATTERN = re.compile(r"(.*?)([.!?]+)", re.DOTALL)

SUMMARY_MIN_SENTENCE = 10
SUMMARY_FALLBACK_CHARS = 100


class TokenEstimator:
    """
    Counts tokens either as ceil(chars / 4) or with a tiktoken encoding.
    """

    def __init__(self, method: str = "chars"):
        self.method = method
        self.encoder = None if method == "chars" else tiktoken.get_encoding(method)

    def count(self, text: str) -> int:
        if self.encoder is None:
            return math.ceil(len(text) / 4)
        return len(self.encoder.encode(text))


def extract_keywords(content: str,
                     max_keywords: int = 10,
                     min_length: int = 4,
                     stopwords: Iterable[str] = STOPWORDS) -> List[str]:
    """Most frequent content words, ties kept in order of first appearance."""
    stop = set(stopwords)
    words = [
        w for w in NON_WORD_PATTERN.sub(" ", content.lower()).split()
        if len(w) >= min_length and w not in stop
    ]
    return [word for word, _ in Counter(words).most_common(max_keywords)]


def generate_summary(content: str) -> str:
    text = content.strip()
    match = SENTENCE_PATTERN.match(text)
    if match and len(match.group(1).strip()) > SUMMARY_MIN_SENTENCE:
        return match.group(1).strip() + match.group(2)[0]
    return text[:SUMMARY_FALLBACK_CHARS] + "..."


def global_keywords(keyword_lists: Iterable[List[str]], limit: int = 20) -> List[str]:
    counts = Counter()
    for keywords in keyword_lists:
        counts.update(keywords)
    return [word for word, _ in counts.most_common(limit)]


def normalise_whitespace(text: str, preserve_formatting: bool = True) -> str:
    """Without formatting, whitespace runs collapse within each line; line breaks between elements stay."""
    if preserve_formatting:
        return text.strip()
    lines = (" ".join(line.split()) for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


def clean_heading(text: str, max_length: Optional[int] = None) -> str:
    """First line of a heading chunk without its leading '#' markers."""
    first_line = text.strip().split("\n", 1)[0]
    title = first_line.lstrip("#").strip()
    return title[:max_length] if max_length else title
