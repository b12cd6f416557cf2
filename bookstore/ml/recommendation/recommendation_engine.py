"""
Recommendation Engine
"Readers also liked" recommendations: vector-similar candidates re-ranked
by a language model, with a genre/stock heuristic as fallback.
"""

import logging
import re
from typing import List, Optional

from ...catalog.items import CatalogItem
from ...catalog.repository import BookRepository
from ..config import MLConfig, get_ml_config
from ..errors import ProviderUnavailable
from ..llm import LanguageModel
from ..retrieval.similarity_search import SimilaritySearchEngine

logger = logging.getLogger(__name__)

GENERIC_RECOMMENDATION_EXPLANATION = "Similar genre and style."

_NOT_ID_CHARS = re.compile(r"[^0-9,]")


def parse_ids(response: str) -> List[int]:
    """
    Parse a comma-separated id list from a model response.

    Every character that is not a digit or comma is removed first; empty
    tokens are skipped.
    """
    ids = []
    for token in _NOT_ID_CHARS.sub("", response or "").split(","):
        if token:
            try:
                ids.append(int(token))
            except ValueError:
                continue
    return ids


class RecommendationEngine:
    """
    Recommends catalog items related to a source item.

    Example:
        >>> engine = RecommendationEngine(search_engine, language_model, repository)
        >>> engine.recommend(book, limit=4)
    """

    def __init__(
        self,
        search_engine: SimilaritySearchEngine,
        language_model: Optional[LanguageModel],
        repository: BookRepository,
        config: Optional[MLConfig] = None,
    ):
        self.search_engine = search_engine
        self.language_model = language_model
        self.repository = repository
        self.config = config or get_ml_config()

    def _complete(self, prompt: str) -> str:
        if self.language_model is None:
            raise ProviderUnavailable("No language model configured")
        return self.language_model.complete(prompt)

    def format_item(self, item: CatalogItem) -> str:
        limit = self.config.recommendation.prompt_description_chars
        description = item.description or ""
        if len(description) > limit:
            description = description[:limit] + "..."
        return (
            f"ID: {item.id} | Title: {item.title} | Author: {item.author} | "
            f"Genre: {item.genre} | Description: {description}"
        )

    def build_ranking_prompt(self, item: CatalogItem, candidates: List[CatalogItem], limit: int) -> str:
        lines = [
            "You are an experienced bookseller. The customer is looking at this book:",
            "",
            self.format_item(item),
            "",
            "Here are the candidate books available in the store:",
            "",
        ]
        lines.extend(self.format_item(candidate) for candidate in candidates)
        lines.extend(
            [
                "",
                f"Based on the customer's interests (genre, author, themes), recommend the {limit} "
                "most suitable books from the list, most relevant first.",
                "",
                "Consider:",
                "- Genre similarity",
                "- Similar themes and style",
                "- Reading level",
                "",
                "IMPORTANT: Return ONLY the book IDs separated by commas, with no explanation.",
                "Response format: 1,3,5",
            ]
        )
        return "\n".join(lines)

    def recommend(self, item: CatalogItem, limit: int) -> List[CatalogItem]:
        """
        Recommend up to ``limit`` items for ``item``.

        Candidates are the nearest items by embedding; the language model
        picks their order. Ids the model names come first, remaining
        candidates fill up to ``limit`` in their original order.
        """
        if limit <= 0:
            return []

        candidates = self.search_engine.find_similar_books(
            item, limit * self.config.recommendation.candidate_multiplier
        )
        if not candidates:
            logger.info(f"No similar candidates for item {item.id}, using fallback")
            return self.fallback_recommendations(item, limit)

        try:
            response = self._complete(self.build_ranking_prompt(item, candidates, limit))
            ranked_ids = parse_ids(response)
        except Exception as e:
            logger.warning(f"Re-ranking failed for item {item.id}, using fallback: {e}")
            return self.fallback_recommendations(item, limit)

        by_id = {candidate.id: candidate for candidate in candidates}
        results: List[CatalogItem] = []
        chosen = set()

        for item_id in ranked_ids:
            candidate = by_id.get(item_id)
            if candidate is not None and item_id not in chosen:
                results.append(candidate)
                chosen.add(item_id)

        for candidate in candidates:
            if len(results) >= limit:
                break
            if candidate.id not in chosen:
                results.append(candidate)
                chosen.add(candidate.id)

        return results[:limit]

    def fallback_recommendations(self, item: CatalogItem, limit: int) -> List[CatalogItem]:
        """
        In-stock items of the same genre, then any other in-stock items.

        Both groups exclude the source item and follow catalog order.
        """
        available = [
            other for other in self.repository.find_all() if other.id != item.id and other.in_stock
        ]

        genre = (item.genre or "").lower()
        results = [other for other in available if genre and (other.genre or "").lower() == genre][:limit]

        if len(results) < limit:
            chosen = {other.id for other in results}
            for other in available:
                if len(results) >= limit:
                    break
                if other.id not in chosen:
                    results.append(other)

        return results

    def explain_recommendation(self, item: CatalogItem, recommended: CatalogItem) -> str:
        """One or two sentences on why ``recommended`` suits a reader of ``item``."""
        prompt = (
            f"A customer is looking at '{item.title}' ({item.author}, genre: {item.genre}). "
            f"Explain in 1-2 sentences why they might enjoy '{recommended.title}' "
            f"({recommended.author}, genre: {recommended.genre}). Be brief and specific."
        )
        try:
            return self._complete(prompt).strip()
        except Exception as e:
            logger.warning(f"Recommendation explanation failed for item {recommended.id}: {e}")
            return GENERIC_RECOMMENDATION_EXPLANATION
