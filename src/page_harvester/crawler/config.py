"""Constants and tuning parameters for the crawl-execution engine."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Fetch timing
# ---------------------------------------------------------------------------

#: Default navigation and readiness-wait timeout (milliseconds).  Overridden
#: per rule set by ``RuleSet.timeout_ms``.
DEFAULT_TIMEOUT_MS: int = 30_000

#: Default number of attempts per URL.  Overridden per rule set.
DEFAULT_MAX_RETRIES: int = 3

#: Default pause between attempts (milliseconds).  Overridden per rule set.
DEFAULT_RETRY_DELAY_MS: int = 1_000

#: Playwright load state awaited by ``page.goto``.  DOM parsed only: sites
#: with long-polling or analytics traffic never reach network idle.
NAVIGATION_WAIT_UNTIL: str = "domcontentloaded"

#: Element state awaited for a rule set's readiness selector.
READINESS_STATE: str = "visible"

# ---------------------------------------------------------------------------
# Browser identity
# ---------------------------------------------------------------------------

#: User-agent string presented by the browser process and context.
USER_AGENT: str = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/94.0.4606.81 Safari/537.36"
)

DEFAULT_VIEWPORT_WIDTH: int = 1280
DEFAULT_VIEWPORT_HEIGHT: int = 800

#: Extra Chromium flags.  Required when running inside containers without
#: a user namespace sandbox or a large ``/dev/shm``.
BROWSER_LAUNCH_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
)
