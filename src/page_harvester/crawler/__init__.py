"""Crawl-execution engine.

Sub-modules:
- ``config``       - constants and tuning parameters
- ``models``       - ``RuleSet``, ``ExtractionRule``, ``CrawlRecord`` and attempt types
- ``transforms``   - per-field transform strategies and element helpers
- ``session``      - Playwright browser/context lifecycle (``BrowserSession``)
- ``fetcher``      - per-URL retry state machine (``PageFetcher``)
- ``extractor``    - rule-driven DOM extraction (``extract_fields``)
- ``store``        - in-memory result ledger (``ResultStore``)
- ``registry``     - exact-then-pattern rule-set lookup (``RuleRegistry``)
- ``web_crawler``  - caller-facing API (``WebCrawler``)
- ``service``      - search/detail requests with persistence (``CrawlerService``)
- ``storage``      - timestamped JSON files (``JsonFileStorage``)
"""
