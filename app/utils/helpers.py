"""
Common text helpers shared by the pipeline stages.
"""
from typing import List
import re


_TAG_RE = re.compile(r"<[^>]+>")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+|\n+")

# Words that carry no capability meaning in a client request
_STOPWORDS = {
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for',
    'of', 'with', 'by', 'from', 'as', 'is', 'was', 'are', 'were', 'been',
    'be', 'have', 'has', 'had', 'do', 'does', 'did', 'will', 'would',
    'could', 'should', 'may', 'might', 'can', 'this', 'that', 'these',
    'those', 'i', 'you', 'he', 'she', 'it', 'we', 'they', 'them', 'their',
    # request boilerplate
    'need', 'needs', 'want', 'wants', 'looking', 'like', 'please', 'hello',
    'thanks', 'thank', 'help', 'make', 'quote', 'price', 'pricing', 'cost',
    'costs', 'budget', 'project', 'know', 'also', 'just', 'some', 'about',
    'your', 'ours', 'what', 'when', 'where', 'which', 'there', 'here',
    'able', 'team', 'company', 'business', 'asap', 'soon', 'into', 'more',
    'much', 'many', 'very', 'really', 'something', 'anything', 'interested',
    'regards', 'best', 'cheers', 'possible', 'around', 'than',
    # calendar words are deadlines, not capabilities
    'today', 'tomorrow', 'week', 'weeks', 'weekend', 'month', 'months',
    'days', 'monday', 'tuesday', 'wednesday', 'thursday', 'friday',
    'saturday', 'sunday', 'january', 'february', 'march', 'april', 'june',
    'july', 'august', 'september', 'october', 'november', 'december',
}


def strip_markup(text: str) -> str:
    """Drop HTML tags, keeping the text between them."""
    return _TAG_RE.sub(" ", text or "")


def split_sentences(text: str) -> List[str]:
    """Split prose into rough sentences (also on line breaks)."""
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text or "") if s.strip()]


def extract_keywords(text: str, top_n: int = 10) -> List[str]:
    """
    Extract top keywords from text using simple frequency analysis.

    Args:
        text: Input text
        top_n: Number of top keywords to return

    Returns:
        List of top keywords, most frequent first (ties keep first-seen order)
    """
    words = text.lower().split()

    word_freq = {}
    for word in words:
        word = re.sub(r'[^\w]', '', word)
        if (
            word
            and word not in _STOPWORDS
            and len(word) > 3
            and word[0].isalpha()
        ):
            word_freq[word] = word_freq.get(word, 0) + 1

    sorted_words = sorted(word_freq.items(), key=lambda x: x[1], reverse=True)
    return [word for word, _ in sorted_words[:top_n]]


def truncate_text(text: str, max_length: int = 200, suffix: str = "...") -> str:
    """
    Truncate text to maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
