"""
Music Search Service

Searches the iTunes catalogue for songs with a preview clip, so users can
pick a track whose preview URL plays directly in the profile player.
"""

import logging
from typing import List, Optional

import httpx

from linkbio.api.schemas import MusicSearchResult
from linkbio.core.exceptions import LinkBioException, UpstreamServiceError

logger = logging.getLogger(__name__)


class MusicSearchService:

    def __init__(
        self,
        search_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.search_url = search_url
        self.timeout = timeout
        self._client = client

    async def search(self, query: str, limit: int = 8) -> List[MusicSearchResult]:
        """
        Search songs by free text.

        Items without a preview URL, title, artist or id are skipped and
        duplicate ids are dropped.

        Raises:
            UpstreamServiceError: Search API answered with a non-2xx status
            LinkBioException: Transport failure
        """
        params = {"entity": "song", "country": "US", "term": query, "limit": limit}

        try:
            payload = await self._get(params)
        except httpx.HTTPStatusError as e:
            logger.warning(f"Music search returned {e.response.status_code}")
            raise UpstreamServiceError("itunes", "Music search is unavailable.")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Music search failed: {e}", exc_info=True)
            raise LinkBioException("Music search request failed.")

        raw_results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(raw_results, list):
            return []

        seen = set()
        results = []
        for item in raw_results:
            if not isinstance(item, dict):
                continue
            if not all(item.get(key) for key in ("previewUrl", "trackName", "artistName", "trackId")):
                continue

            track_id = str(item["trackId"])
            if track_id in seen:
                continue
            seen.add(track_id)

            results.append(MusicSearchResult(
                id=track_id,
                title=item["trackName"],
                artist=item["artistName"],
                previewUrl=item["previewUrl"],
                trackViewUrl=item.get("trackViewUrl"),
                artworkUrl=item.get("artworkUrl100"),
            ))

        return results

    async def _get(self, params: dict):
        headers = {"Accept": "application/json"}
        if self._client is not None:
            response = await self._client.get(self.search_url, params=params, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.search_url, params=params, headers=headers)

        response.raise_for_status()
        return response.json()
