"""Scraper package: proxy selection, robots.txt, fetch, extraction, orchestration."""

from newsgrab.scraper.extractor import extract_article
from newsgrab.scraper.fetcher import fetch_url
from newsgrab.scraper.models import BatchOutcome, ExtractedArticle, FetchResult, ProxyDescriptor
from newsgrab.scraper.pipeline import Pipeline, run_batch
from newsgrab.scraper.proxy import ProxyPool, select_proxy
from newsgrab.scraper.robots import RobotsChecker

__all__ = [
    "fetch_url",
    "extract_article",
    "select_proxy",
    "Pipeline",
    "run_batch",
    "ProxyPool",
    "RobotsChecker",
    "BatchOutcome",
    "ExtractedArticle",
    "FetchResult",
    "ProxyDescriptor",
]
