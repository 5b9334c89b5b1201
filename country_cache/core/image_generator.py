import os

from PIL import Image, ImageDraw, ImageFont

from country_cache.config import Config
from country_cache.core.math_utils import round_to

IMAGE_NAME = "summary.png"
TOP_N = 5


def summary_image_path():
    return os.path.join(Config.cache_dir, IMAGE_NAME)


def get_summary_image_path():
    """Return the path of the last generated summary, or None if there is none."""
    path = summary_image_path()
    if not os.path.isfile(path):
        return None
    return path


def _load_fonts():
    try:
        return (
            ImageFont.truetype("DejaVuSans-Bold.ttf", 24),
            ImageFont.truetype("DejaVuSans.ttf", 16),
            ImageFont.truetype("DejaVuSansMono.ttf", 14),
        )
    except OSError:
        # Fallback if system fonts aren't found
        default = ImageFont.load_default()
        return default, default, default


def top_by_gdp(countries, limit=TOP_N):
    ranked = [c for c in countries if c.get("estimated_gdp") is not None]
    ranked.sort(key=lambda c: c["estimated_gdp"], reverse=True)
    return ranked[:limit]


def generate_summary_image(countries, refreshed_at):
    """Render total count, top 5 estimated GDP and refresh time to summary.png.

    ``countries`` is the transformed record set of a sync run. The file is
    written next to its final location and moved into place, so readers
    never see a half-written image.
    """
    os.makedirs(Config.cache_dir, exist_ok=True)
    image_path = summary_image_path()

    img = Image.new("RGB", (600, 400), color=(30, 30, 70))
    d = ImageDraw.Draw(img)
    font_large, font_small, font_mono = _load_fonts()

    d.text((20, 20), "Country Cache Summary", fill=(255, 200, 0), font=font_large)

    d.text(
        (20, 60),
        f"Total Countries: {len(countries)}",
        fill=(200, 200, 255),
        font=font_small,
    )
    d.text(
        (20, 85),
        "Last Successful Refresh (UTC):",
        fill=(200, 200, 255),
        font=font_small,
    )
    d.text((30, 110), refreshed_at, fill=(100, 255, 100), font=font_mono)

    y_pos = 150
    d.text((20, y_pos), "Top 5 Estimated GDP:", fill=(255, 255, 255), font=font_small)
    y_pos += 25

    top = top_by_gdp(countries)
    if not top:
        d.text((30, y_pos), "No GDP data available.", fill=(180, 180, 180), font=font_mono)

    for i, country in enumerate(top, 1):
        gdp_str = f"${round_to(country['estimated_gdp']):,.2f}"
        line = f"{i}. {country['name'][:25].ljust(25)} {gdp_str}"
        d.text((30, y_pos), line, fill=(255, 255, 255), font=font_mono)
        y_pos += 20

    tmp_path = image_path + ".tmp"
    img.save(tmp_path, format="PNG")
    os.replace(tmp_path, image_path)
    return image_path
