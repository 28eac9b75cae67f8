"""
Tokenizer for scrap text.

Splits raw text into lowercase word tokens, dropping punctuation,
very short words and common English stop words.
"""

import re
from typing import List

# Common stop words to filter out
STOP_WORDS = frozenset([
    'a', 'an', 'the', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for',
    'of', 'with', 'by', 'from', 'as', 'is', 'was', 'are', 'were', 'been',
    'be', 'have', 'has', 'had', 'do', 'does', 'did', 'will', 'would', 'could',
    'should', 'may', 'might', 'must', 'shall', 'can', 'need', 'dare', 'ought',
    'used', 'it', 'its', 'this', 'that', 'these', 'those', 'i', 'you', 'he',
    'she', 'we', 'they', 'what', 'which', 'who', 'whom', 'when', 'where',
    'why', 'how', 'all', 'each', 'every', 'both', 'few', 'more', 'most',
    'other', 'some', 'such', 'no', 'nor', 'not', 'only', 'own', 'same',
    'so', 'than', 'too', 'very', 'just', 'also', 'now', 'here', 'there',
])

MIN_TOKEN_LENGTH = 3

_NON_WORD_PATTERN = re.compile(r'[^\w\s]')


def tokenize(text: str) -> List[str]:
    """
    Tokenize and clean text.

    Args:
        text: Raw text (title, body, tags etc. already concatenated)

    Returns:
        List of lowercase tokens in document order
    """
    if not text:
        return []

    cleaned = _NON_WORD_PATTERN.sub(' ', text.lower())

    return [
        word for word in cleaned.split()
        if len(word) >= MIN_TOKEN_LENGTH and word not in STOP_WORDS
    ]
