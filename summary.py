import logging
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

WIDTH, HEIGHT = 800, 600
BACKGROUND = (240, 240, 240)
INK = (0, 0, 0)
RULE = (51, 51, 51)
TOP_N = 5
MAX_NAME = 20


def _short(name):
    return name if len(name) <= MAX_NAME else name[:MAX_NAME] + "..."


def render_summary(status, countries, path):
    """Draw the summary PNG for ``status`` and the already sorted ``countries``.

    Only the first five countries are drawn, so callers pass them sorted by
    estimated GDP, highest first.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    im = Image.new("RGB", (WIDTH, HEIGHT), BACKGROUND)
    draw = ImageDraw.Draw(im)
    font = ImageFont.load_default()

    refreshed = status.last_refreshed_at.isoformat() if status.last_refreshed_at else "Never"

    draw.rectangle([(0, 0), (WIDTH, 1)], fill=RULE)
    draw.text((50, 30), "Country GDP Summary", fill=INK, font=font)
    draw.text((50, 80), f"Total Countries: {status.total_countries}", fill=INK, font=font)
    draw.text((50, 110), f"Last Refresh: {refreshed}", fill=INK, font=font)
    draw.rectangle([(0, 140), (WIDTH, 141)], fill=RULE)
    draw.text((50, 150), "Top 5 Countries by GDP:", fill=INK, font=font)

    y = 180
    for idx, c in enumerate(countries[:TOP_N], start=1):
        billions = (c.estimated_gdp or 0) / 1e9
        draw.text((70, y), f"{idx}. {_short(c.name)}: ${billions:,.2f}B", fill=INK, font=font)
        y += 30

    im.save(path, format="PNG")
    logger.info("Summary image written to %s", path)
    return path


def discard_summary(path):
    """Remove a cached summary image so the next request redraws it."""
    path = Path(path)
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    logger.info("Discarded cached summary image %s", path)
    return True
