from datetime import datetime
from PIL import Image, ImageDraw, ImageFont
import io
import logging

from coursehub.config import CERTIFICATE_ISSUER

logger = logging.getLogger(__name__)

FONT_DIR = "/usr/share/fonts/truetype/dejavu"

# ==================== CERTIFICATE IMAGE GENERATION ====================

def _load_fonts():
    try:
        return (
            ImageFont.truetype(f"{FONT_DIR}/DejaVuSerif-Bold.ttf", 80),
            ImageFont.truetype(f"{FONT_DIR}/DejaVuSerif.ttf", 40),
            ImageFont.truetype(f"{FONT_DIR}/DejaVuSans.ttf", 36),
            ImageFont.truetype(f"{FONT_DIR}/DejaVuSans.ttf", 28),
        )
    except OSError:
        logger.warning("DejaVu fonts not found, falling back to the default bitmap font")
        default = ImageFont.load_default()
        return default, default, default, default


def generate_certificate_image(
    student_name: str,
    course_title: str,
    completion_date: datetime,
    certificate_id: str,
) -> bytes:
    """Render a completion certificate as PNG bytes"""
    width, height = 1920, 1080
    img = Image.new('RGB', (width, height), color='white')
    draw = ImageDraw.Draw(img)
    primary_color   = (41, 128, 185)
    secondary_color = (52, 73, 94)
    gold_color      = (241, 196, 15)
    draw.rectangle([50, 50, width-50, height-50], outline=primary_color, width=10)
    draw.rectangle([70, 70, width-70, height-70], outline=gold_color, width=3)

    title_font, subtitle_font, text_font, small_font = _load_fonts()

    def centered(text, font, y, fill):
        bbox = draw.textbbox((0, 0), text, font=font)
        draw.text(((width - (bbox[2]-bbox[0])) / 2, y), text, fill=fill, font=font)

    centered("CERTIFICATE OF COMPLETION", title_font, 140, primary_color)
    centered("This is to certify that", subtitle_font, 270, secondary_color)
    centered(student_name, title_font, 350, gold_color)
    centered("has successfully completed the course", text_font, 490, secondary_color)
    centered(course_title, title_font, 560, primary_color)
    centered(f"Completed on: {completion_date.strftime('%B %d, %Y')}", small_font, 720, secondary_color)
    centered(f"Certificate ID: {certificate_id}", small_font, 790, secondary_color)
    draw.line([(width//2-200, 930), (width//2+200, 930)], fill=secondary_color, width=2)
    centered(CERTIFICATE_ISSUER, small_font, 945, secondary_color)

    buf = io.BytesIO()
    img.save(buf, format='PNG')
    return buf.getvalue()
