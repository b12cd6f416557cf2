"""
Query Understanding
Natural-language book search: a language model turns the query into
structured SearchCriteria, which then filter the catalog.

Every language-model failure degrades to a defined default (keyword-only
criteria, or a generic explanation sentence).
"""

import json
import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ...catalog.items import CatalogItem
from ...catalog.repository import BookRepository
from ..config import MLConfig, get_ml_config
from ..errors import ProviderUnavailable
from ..llm import LanguageModel

logger = logging.getLogger(__name__)

GENERIC_MATCH_EXPLANATION = "This book matches your request by genre and theme."

EXTRACTION_PROMPT = """You are a book expert. Analyze the user's search query and extract structured parameters.

User query: "{query}"

Extract the following parameters (where applicable):
- genre: book genre (fantasy, detective, romance, sci-fi, thriller, horror, non-fiction, biography, etc.)
- targetAudience: target audience (children, teen, young-adult, adult)
- keywords: array of keywords in English (magic, adventure, war, love, friendship, mystery, etc.)
- author: author (if mentioned)
- mood: mood (dark, funny, sad, inspirational, scary, romantic)
- theme: main theme (if explicitly stated)
- min_year / max_year: publication year range (if stated)

IMPORTANT: Return ONLY valid JSON with no explanation.
Use null for parameters that are not specified in the query.
All text fields in English, except author.

Example response format:
{{
  "genre": "fantasy",
  "targetAudience": "teen",
  "keywords": ["magic", "school", "adventure"],
  "author": null,
  "mood": null,
  "theme": null,
  "confidence": 0.9
}}

JSON:
"""

EXPLANATION_PROMPT = """The user searched for: "{query}"

Book found:
- Title: {title}
- Author: {author}
- Genre: {genre}
- Description: {description}

Explain in 1-2 sentences why this book matches the user's request.
Be specific and brief.
"""


class SearchCriteria(BaseModel):
    """Structured search parameters extracted from a natural-language query."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    genre: Optional[str] = None
    target_audience: Optional[str] = Field(None, alias="targetAudience")
    keywords: List[str] = Field(default_factory=list)
    author: Optional[str] = None
    mood: Optional[str] = None
    theme: Optional[str] = None
    min_year: Optional[int] = None
    max_year: Optional[int] = None
    original_query: Optional[str] = None
    confidence: float = 0.5

    @field_validator("genre", "target_audience", "author", "mood", "theme", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """Treat empty strings as absent."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("keywords", mode="before")
    @classmethod
    def clean_keywords(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return [str(k).strip() for k in v if k is not None and str(k).strip()]

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        if v is None:
            return 0.5
        return min(max(float(v), 0.0), 1.0)

    def is_empty(self) -> bool:
        """True when no checkable field is present."""
        return not (self.genre or self.author or self.keywords)


def strip_code_fences(text: str) -> str:
    """Remove Markdown code-fence markers around a model response."""
    return text.replace("```json", "").replace("```", "").strip()


class QueryUnderstanding:
    """
    Language-model assisted catalog search.

    Args:
        language_model: Model used for extraction and explanations; None
            means every call takes its fallback path
        repository: Catalog reads used for filtering and fallback search
        config: ML configuration
    """

    def __init__(
        self,
        language_model: Optional[LanguageModel],
        repository: BookRepository,
        config: Optional[MLConfig] = None,
    ):
        self.language_model = language_model
        self.repository = repository
        self.config = config or get_ml_config()

    def _complete(self, prompt: str) -> str:
        if self.language_model is None:
            raise ProviderUnavailable("No language model configured")
        return self.language_model.complete(prompt)

    def build_extraction_prompt(self, query: str) -> str:
        return EXTRACTION_PROMPT.format(query=query)

    def fallback_criteria(self, query: str) -> SearchCriteria:
        """Keyword-only criteria built from the raw query."""
        return SearchCriteria(
            original_query=query,
            keywords=query.lower().split(),
            confidence=self.config.understanding.fallback_confidence,
        )

    def parse_criteria(self, response: str, query: str) -> SearchCriteria:
        """
        Parse a model response into SearchCriteria.

        Falls back to keyword-only criteria when the response is not a JSON
        object of the expected shape.
        """
        try:
            data = json.loads(strip_code_fences(response))
            if not isinstance(data, dict):
                raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
            if data.get("confidence") is None:
                data["confidence"] = self.config.understanding.default_confidence
            data["original_query"] = query
            return SearchCriteria.model_validate(data)

        except (ValueError, TypeError, ValidationError) as e:
            logger.warning(f"Could not parse search criteria for '{query}': {e}")
            return self.fallback_criteria(query)

    def extract_criteria(self, query: str) -> SearchCriteria:
        """Ask the language model for structured criteria; never raises."""
        try:
            response = self._complete(self.build_extraction_prompt(query))
        except Exception as e:
            logger.warning(f"Criteria extraction failed for '{query}', using keywords: {e}")
            return self.fallback_criteria(query)

        return self.parse_criteria(response, query)

    def matches_criteria(self, item: CatalogItem, criteria: SearchCriteria) -> bool:
        """
        Check an item against criteria.

        Genre and author are case-insensitive substring tests; the keyword
        dimension matches when enough keywords occur in the item's title,
        description and genre. Only dimensions present in the criteria are
        considered; with none considered the item is rejected.
        """
        settings = self.config.understanding
        considered = 0
        matched = 0

        if criteria.genre:
            considered += 1
            if item.genre and criteria.genre.lower() in item.genre.lower():
                matched += 1

        if criteria.author:
            considered += 1
            if item.author and criteria.author.lower() in item.author.lower():
                matched += 1

        if criteria.keywords:
            considered += 1
            item_text = " ".join(
                part for part in (item.title, item.description, item.genre) if part
            ).lower()
            hits = sum(1 for keyword in criteria.keywords if keyword.lower() in item_text)
            if hits >= len(criteria.keywords) * settings.keyword_match_ratio:
                matched += 1

        if considered == 0:
            return False

        return matched / considered >= settings.criteria_match_ratio

    def relax(self, criteria: SearchCriteria) -> SearchCriteria:
        """Keep only keywords and the original query, with reduced confidence."""
        return SearchCriteria(
            keywords=list(criteria.keywords),
            original_query=criteria.original_query,
            confidence=criteria.confidence * self.config.understanding.relax_confidence_factor,
        )

    def filter_items(self, items: List[CatalogItem], criteria: SearchCriteria) -> List[CatalogItem]:
        return [item for item in items if self.matches_criteria(item, criteria)]

    def search(self, query: Optional[str]) -> List[CatalogItem]:
        """
        Natural-language search.

        Filters the catalog with extracted criteria, retrying once with
        relaxed criteria when nothing matches. Falls back to a plain title
        search on unexpected failure.
        """
        if query is None or not query.strip():
            return self.repository.find_all()

        try:
            criteria = self.extract_criteria(query)
            items = self.repository.find_all()
            matches = self.filter_items(items, criteria)

            if not matches:
                logger.info(f"No matches for '{query}', retrying with relaxed criteria")
                matches = self.filter_items(items, self.relax(criteria))

            return matches

        except Exception as e:
            logger.error(f"Natural-language search failed for '{query}': {e}", exc_info=True)
            return self.repository.search_by_title(query)

    def explain_match(self, query: str, item: CatalogItem) -> str:
        """One or two sentences on why ``item`` fits ``query``."""
        limit = self.config.understanding.explain_description_chars
        description = item.description or ""
        if len(description) > limit:
            description = description[:limit] + "..."

        prompt = EXPLANATION_PROMPT.format(
            query=query,
            title=item.title,
            author=item.author,
            genre=item.genre,
            description=description,
        )

        try:
            return self._complete(prompt).strip()
        except Exception as e:
            logger.warning(f"Match explanation failed for item {item.id}: {e}")
            return GENERIC_MATCH_EXPLANATION
