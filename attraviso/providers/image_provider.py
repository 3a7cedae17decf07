"""
Image resolver chain for attractions.

Sources are tried in a fixed order and the first one that yields a URL wins:

1. Wikidata P18 image (`wikidata=Q...` tag)
2. Wikipedia page thumbnail (`wikipedia=lang:Title` tag)
3. The attraction website's og:image / twitter:image metadata
4. Conventional hero-image paths on the website origin

Every source failure is contained here. Finding no image is a normal
outcome and leaves the record untouched.
"""

import logging
from typing import Optional

import aiohttp

from attraviso.models import Attraction
from attraviso.providers.caching import (
    ENCYCLOPEDIA,
    KNOWLEDGEBASE,
    SITE,
    EnrichmentCache,
    cache_key,
)
from attraviso.providers.utils import get_session
from attraviso.providers.wikidata_provider import fetch_wikidata_image, is_valid_qid
from attraviso.providers.wikipedia_provider import fetch_wikipedia_thumbnail, parse_wikipedia_ref
from attraviso.providers.website_image_provider import (
    guess_site_image,
    normalize_website,
    scrape_site_image,
)
from attraviso.utils.async_utils import first_of


class ImageResolver:
    """Resolve a representative image URL for an Attraction."""

    def __init__(
        self,
        cache: EnrichmentCache,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 6.0,
    ):
        """Initialize the resolver.

        Args:
            cache: Shared enrichment cache
            session: HTTP session to reuse; a short-lived one is opened per
                call when omitted
            timeout: Per-call timeout in seconds for each outbound request
        """
        self.cache = cache
        self.session = session
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)

    async def resolve(self, record: Attraction) -> Attraction:
        """Fill `record.image_url` from the first source that has one.

        A record that already has an image is returned as-is without any
        network call.
        """
        if record.image_url:
            return record

        async with get_session(self.session) as session:
            steps = (
                ("wikidata", lambda: self._from_wikidata(session, record)),
                ("wikipedia", lambda: self._from_wikipedia(session, record)),
                ("website", lambda: self._from_website(session, record)),
                ("guessed", lambda: self._from_guessed_paths(session, record)),
            )

            def log_failure(index: int, exc: BaseException):
                self.logger.debug("%s image lookup failed for %s: %s", steps[index][0], record.id, exc)

            url = await first_of((fn for _, fn in steps), on_error=log_failure)

        if url:
            record.set_image(url)
        return record

    async def _cached(self, key: str, fetch) -> Optional[str]:
        hit = self.cache.get(key)
        if hit:
            return hit
        url = await fetch()
        if url:
            self.cache.set(key, url)
        return url

    async def _from_wikidata(self, session, record: Attraction) -> Optional[str]:
        qid = record.tags.wikidata
        if not is_valid_qid(qid):
            return None
        return await self._cached(
            cache_key(KNOWLEDGEBASE, qid),
            lambda: fetch_wikidata_image(session, qid, timeout=self.timeout),
        )

    async def _from_wikipedia(self, session, record: Attraction) -> Optional[str]:
        ref = parse_wikipedia_ref(record.tags.wikipedia)
        if ref is None:
            return None
        lang, title = ref
        return await self._cached(
            cache_key(ENCYCLOPEDIA, f"{lang}:{title}"),
            lambda: fetch_wikipedia_thumbnail(session, lang, title, timeout=self.timeout),
        )

    async def _from_website(self, session, record: Attraction) -> Optional[str]:
        website = normalize_website(record.tags.website)
        if website is None:
            return None
        return await self._cached(
            cache_key(SITE, website),
            lambda: scrape_site_image(session, website, timeout=self.timeout),
        )

    async def _from_guessed_paths(self, session, record: Attraction) -> Optional[str]:
        website = normalize_website(record.tags.website)
        if website is None:
            return None
        return await self._cached(
            cache_key(SITE, website),
            lambda: guess_site_image(session, website, timeout=self.timeout),
        )
