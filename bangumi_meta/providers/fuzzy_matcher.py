"""Fuzzy scoring and acceptance of catalog search results."""

import logging

from thefuzz import fuzz

from ..models import SearchCandidate, Subject

logger = logging.getLogger(__name__)

# Minimum similarity (0-100) for a folder-name search result to be accepted
MATCH_THRESHOLD = 80


def score_subject(keyword: str, subject: Subject) -> int:
    """Score a subject against a search keyword.

    Both the original and the Chinese title are compared; the better one
    counts.
    """
    titles = [title for title in (subject.name, subject.name_cn) if title]
    if not keyword or not titles:
        return 0
    return max(fuzz.ratio(keyword, title) for title in titles)


def rank_subjects(
    keyword: str, subjects: list[Subject], sort_by_score: bool = False
) -> list[SearchCandidate]:
    """Pair search results with their scores.

    Args:
        keyword: Search keyword
        subjects: Search results in catalog order
        sort_by_score: Re-order by score (stable) instead of keeping the
            catalog's relevance order

    Returns:
        Ranked candidates, best first
    """
    candidates = [
        SearchCandidate(subject=subject, score=score_subject(keyword, subject))
        for subject in subjects
    ]
    if sort_by_score:
        candidates.sort(key=lambda c: c.score, reverse=True)
    return candidates


class FuzzyAcceptor:
    """Accepts the top search candidate when it is similar enough."""

    threshold = MATCH_THRESHOLD

    def accept(self, candidates: list[SearchCandidate]) -> Subject | None:
        """Return the first candidate if its score reaches the threshold.

        Args:
            candidates: Ranked candidates, best first

        Returns:
            The accepted subject, or None
        """
        if not candidates:
            return None

        best = candidates[0]
        if best.score >= self.threshold:
            return best.subject

        logger.debug(
            f"Best match {best.subject.name} (#{best.subject.id}) scored "
            f"{best.score} < {self.threshold}"
        )
        return None
