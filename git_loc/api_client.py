"""GitHub API client with bounded concurrency, tiered retries and batched pagination."""

import time
import logging
import threading
from typing import Dict, List, Optional
from concurrent.futures import ThreadPoolExecutor

import requests
from requests.adapters import HTTPAdapter
from tenacity import (RetryError, Retrying, before_sleep_log, retry_if_exception_type,
                      stop_after_attempt, wait_fixed, wait_none)

from .exceptions import FetchExhausted
from .pagination import StopCondition

MAX_CONCURRENT_REQUESTS = 10
SLOT_COOLDOWN = 0.01  # seconds a slot stays taken after its response arrived
QUICK_RETRY_ATTEMPTS = 5
RATE_LIMIT_RETRY_ATTEMPTS = 20
RATE_LIMIT_RETRY_DELAY = 30  # seconds
PER_PAGE = 100
DEFAULT_PAGE_BATCH = 10

# Error statuses surface as requests.HTTPError through raise_for_status();
# undecodable JSON bodies as ValueError.
RETRYABLE_ERRORS = (requests.RequestException, ValueError)


class GitHubAPIClient:
    """Handles GitHub API requests with rate limiting, retry logic and pagination."""

    def __init__(self, token: str = None, max_concurrency: int = MAX_CONCURRENT_REQUESTS,
                 cooldown: float = SLOT_COOLDOWN, retry_delay: float = RATE_LIMIT_RETRY_DELAY,
                 sleep=time.sleep):
        """Initialize the GitHub API client.

        Args:
            token: GitHub personal access token for authentication
            max_concurrency: Maximum number of requests in flight at any moment
            cooldown: Seconds a concurrency slot stays held after a response is received
            retry_delay: Seconds to wait between rate-limit retry attempts
            sleep: Sleep function used between retries (injectable for tests)
        """
        self.token = token
        self.max_concurrency = max_concurrency
        self.cooldown = cooldown
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._slots = threading.BoundedSemaphore(max_concurrency)

        self.session = requests.Session()

        # Page batches and per-PR fetches share one pool, capped by the slots
        adapter = HTTPAdapter(
            pool_connections=max_concurrency,
            pool_maxsize=max_concurrency * 2
        )
        self.session.mount('https://', adapter)
        self.session.mount('http://', adapter)

        self.session.headers.update({'Accept': 'application/vnd.github+json'})
        if self.token:
            self.session.headers.update({'Authorization': f'Bearer {self.token}'})
            logging.info("Initialized GitHub API client with token")
        else:
            logging.warning("No GitHub token provided. Rate limits will be much lower.")

    def fetch(self, url: str, params: Dict = None, fmt: str = 'json'):
        """Fetch a single URL while holding one of the concurrency slots.

        Args:
            url: The URL to fetch
            params: Query parameters
            fmt: 'json' to decode the body as JSON, 'text' for the raw body

        Returns:
            Decoded JSON or response text

        Raises:
            FetchExhausted: If both retry tiers failed
        """
        self._slots.acquire()
        try:
            return self._fetch_with_retries(url, params, fmt)
        finally:
            self._release_slot()

    def _release_slot(self):
        if self.cooldown <= 0:
            self._slots.release()
            return
        timer = threading.Timer(self.cooldown, self._slots.release)
        timer.daemon = True
        timer.start()

    def _attempt(self, url: str, params: Optional[Dict], fmt: str):
        logging.debug(f"[Fetch] {url} {params or ''}")
        response = self.session.get(url, params=params)
        response.raise_for_status()
        if fmt == 'text':
            return response.text
        return response.json()

    def _fetch_with_retries(self, url: str, params: Optional[Dict], fmt: str):
        # Tier 1 rides out connection blips, tier 2 waits out a rate limit window
        quick = Retrying(
            stop=stop_after_attempt(QUICK_RETRY_ATTEMPTS),
            wait=wait_none(),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            sleep=self._sleep,
            before_sleep=before_sleep_log(logging.getLogger(), logging.DEBUG)
        )
        try:
            return quick(self._attempt, url, params, fmt)
        except RetryError as e:
            logging.warning(f"Failed to probe {url} {QUICK_RETRY_ATTEMPTS} times "
                            f"({e.last_attempt.exception()}), retrying every {self.retry_delay}s")

        patient = Retrying(
            stop=stop_after_attempt(RATE_LIMIT_RETRY_ATTEMPTS),
            wait=wait_fixed(self.retry_delay),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            sleep=self._sleep,
            before_sleep=before_sleep_log(logging.getLogger(), logging.WARNING)
        )
        self._sleep(self.retry_delay)
        try:
            return patient(self._attempt, url, params, fmt)
        except RetryError as e:
            logging.error(f"Giving up on {url}")
            raise FetchExhausted(url, e.last_attempt.exception()) from e

    def get_paginated(self, url: str, params: Dict = None, batch_size: int = DEFAULT_PAGE_BATCH,
                      stop_condition: Optional[StopCondition] = None) -> List[Dict]:
        """Fetch pages of a paginated GitHub API endpoint, batch_size pages at a time.

        Pages of a batch are requested concurrently but examined in page order:
        an empty page ends the listing, and a stop condition returning a page
        keeps that (truncated) page and ends it too. No further batch is
        requested once the listing has ended.

        Args:
            url: The API endpoint URL
            params: Query parameters
            batch_size: Number of pages requested concurrently
            stop_condition: Optional predicate run against each page

        Returns:
            List of all items from all pages, in page order
        """
        results = []
        params = dict(params or {})
        params['per_page'] = PER_PAGE
        last_page = 0

        while True:
            page_numbers = list(range(last_page + 1, last_page + batch_size + 1))
            logging.info(f"    Reading pages: {page_numbers[0]} -> {page_numbers[-1]}")

            with ThreadPoolExecutor(max_workers=batch_size) as executor:
                futures = [
                    executor.submit(self.fetch, url, dict(params, page=number))
                    for number in page_numbers
                ]
                pages = [future.result() for future in futures]

            for number, page in zip(page_numbers, pages):
                if not page:
                    logging.info(f"    Total Pages: {number - 1}")
                    return results

                truncated = stop_condition(page) if stop_condition else None
                if truncated is not None:
                    logging.debug(f"Early termination triggered at page {number}")
                    logging.info(f"    Total Pages: {number}")
                    results.extend(truncated)
                    return results

                results.extend(page)

            last_page = page_numbers[-1]
