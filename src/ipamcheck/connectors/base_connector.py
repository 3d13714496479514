"""
Base async connector class for REST API integrations.
Provides common functionality for retry logic and paginated list requests.
"""

import asyncio
import logging
import ssl
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiohttp

from ..errors import ConnectorError


class BaseAsyncConnector(ABC):
    """
    Abstract base class for async API connectors.
    Implements retry with exponential backoff and sequential pagination.
    """

    def __init__(
        self,
        base_url: str,
        timeout: int = 30,
        max_retries: int = 3,
        initial_delay: float = 1,
        backoff_multiplier: float = 2,
        max_delay: float = 60,
        verify_ssl: bool = True,
        ca_file: Optional[str] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.backoff_multiplier = backoff_multiplier
        self.max_delay = max_delay
        self.verify_ssl = verify_ssl
        self.ca_file = ca_file

        self._session: Optional[aiohttp.ClientSession] = None
        self.logger = logging.getLogger(f"ipamcheck.{self.__class__.__name__}")

        self.stats = {
            'requests_made': 0,
            'requests_successful': 0,
            'requests_failed': 0,
            'retries': 0,
            'start_time': None,
            'end_time': None
        }

    @abstractmethod
    def _get_auth_headers(self) -> Dict[str, str]:
        """Return authentication headers for API requests."""
        pass

    @abstractmethod
    async def test_connection(self) -> bool:
        """Test the API connection. Returns True if successful."""
        pass

    async def __aenter__(self):
        """Async context manager entry."""
        await self._create_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self._close_session()
        return False

    def _ssl_context(self):
        if not self.verify_ssl:
            context = ssl.create_default_context()
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
            return context
        if self.ca_file:
            if Path(self.ca_file).exists():
                return ssl.create_default_context(cafile=self.ca_file)
            self.logger.warning(f"CA file {self.ca_file} not found, using system trust store")
        return None

    async def _create_session(self):
        """Create aiohttp session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                enable_cleanup_closed=True,
                ssl=self._ssl_context()
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=self.timeout,
                headers=self._get_auth_headers()
            )
            self.stats['start_time'] = datetime.now()

    async def _close_session(self):
        """Close aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self.stats['end_time'] = datetime.now()

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Make an HTTP request with retry logic and exponential backoff.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Full URL to request
            **kwargs: Additional arguments for aiohttp request

        Returns:
            JSON response as dict

        Raises:
            ConnectorError: On authentication failure, a non-retryable status,
                or once all retries are exhausted
        """
        await self._create_session()
        delay = self.initial_delay
        last_error = "no attempts made"

        for attempt in range(self.max_retries):
            try:
                self.stats['requests_made'] += 1

                async with self._session.request(method, url, **kwargs) as response:
                    if response.status == 200:
                        self.stats['requests_successful'] += 1
                        return await response.json()

                    elif response.status == 429:
                        retry_after = int(response.headers.get('Retry-After', 60))
                        self.logger.warning(
                            f"Rate limited. Waiting {retry_after}s before retry."
                        )
                        await asyncio.sleep(min(retry_after, self.max_delay))
                        self.stats['retries'] += 1
                        last_error = "rate limited"
                        continue

                    elif response.status in (401, 403):
                        self.stats['requests_failed'] += 1
                        raise ConnectorError(
                            f"Authentication failed: {response.status} for {url}"
                        )

                    elif response.status >= 500:
                        self.logger.warning(
                            f"Server error {response.status}. Attempt {attempt + 1}/{self.max_retries}"
                        )
                        self.stats['retries'] += 1
                        last_error = f"server error {response.status}"

                    else:
                        text = await response.text()
                        self.stats['requests_failed'] += 1
                        raise ConnectorError(
                            f"Request failed: {response.status} - {text[:200]}"
                        )

            except asyncio.TimeoutError:
                self.logger.warning(
                    f"Request timeout. Attempt {attempt + 1}/{self.max_retries}"
                )
                self.stats['retries'] += 1
                last_error = "timeout"

            except aiohttp.ClientError as e:
                self.logger.warning(
                    f"Client error: {e}. Attempt {attempt + 1}/{self.max_retries}"
                )
                self.stats['retries'] += 1
                last_error = str(e)

            if attempt < self.max_retries - 1:
                await asyncio.sleep(delay)
                delay = min(delay * self.backoff_multiplier, self.max_delay)

        self.stats['requests_failed'] += 1
        raise ConnectorError(
            f"All {self.max_retries} retry attempts failed for {url}: {last_error}"
        )

    async def _paginated_fetch(
        self,
        endpoint: str,
        page_size: int,
        params: Optional[Dict[str, Any]] = None,
        data_key: str = "items",
        continue_param: str = "continue",
        limit_param: str = "limit"
    ) -> List[Dict[str, Any]]:
        """
        Fetch all pages of a list endpoint, following continue tokens.

        Args:
            endpoint: API endpoint (without base URL)
            page_size: Number of items per page
            params: Additional query parameters
            data_key: Key in response containing the data array
            continue_param: Name of the continue token parameter
            limit_param: Name of the limit parameter

        Returns:
            List of all fetched items
        """
        all_data = []
        params = dict(params or {})
        params[limit_param] = page_size
        token = None

        while True:
            page_params = dict(params)
            if token:
                page_params[continue_param] = token

            response = await self._request_with_retry(
                'GET',
                f"{self.base_url}{endpoint}",
                params=page_params
            )

            batch = response.get(data_key) or []
            all_data.extend(batch)

            token = (response.get('metadata') or {}).get('continue')
            if not token:
                break

            self.logger.debug(f"Progress: {len(all_data)} items fetched from {endpoint}")

        return all_data

    def get_stats(self) -> Dict[str, Any]:
        """Return statistics about API requests."""
        stats = self.stats.copy()
        if stats['start_time'] and stats['end_time']:
            stats['duration_seconds'] = (
                stats['end_time'] - stats['start_time']
            ).total_seconds()
        return stats
