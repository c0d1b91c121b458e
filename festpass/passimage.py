from __future__ import annotations
import logging
from io import BytesIO
from typing import Any, Dict

import qrcode
from PIL import Image, ImageDraw, ImageFont

from .content import EVENT_INFO
from .errors import StoreError
from .passes import DonationPass

logger = logging.getLogger(__name__)

PASS_WIDTH = 600
PASS_HEIGHT = 860
QR_SIZE = 360


def _qr_image(text: str) -> Image.Image:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=2,
    )
    qr.add_data(text)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    return img.get_image().convert("RGB")


def render_qr_png(text: str) -> bytes:
    buf = BytesIO()
    _qr_image(text).save(buf, format="PNG")
    return buf.getvalue()


def render_pass_png(record: DonationPass) -> bytes:
    """Printable pass: event title, receipt lines, QR of the secure pass id."""
    img = Image.new("RGB", (PASS_WIDTH, PASS_HEIGHT), "white")
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()

    draw.rectangle([0, 0, PASS_WIDTH, 90], fill=(124, 45, 18))
    draw.text((30, 35), EVENT_INFO["title"], fill="white", font=font)

    lines = [
        f"Receipt: {record.display_transaction_id}",
        f"Donor: {record.donor_name}",
        f"Amount: {record.amount}",
        f"Purpose: {record.purpose or '-'}",
        f"Date: {record.transaction_timestamp}",
    ]
    y = 120
    for line in lines:
        draw.text((30, y), line, fill="black", font=font)
        y += 28

    qr = _qr_image(record.secure_pass_id).resize((QR_SIZE, QR_SIZE))
    img.paste(qr, ((PASS_WIDTH - QR_SIZE) // 2, y + 20))
    draw.text((30, PASS_HEIGHT - 50), f"Pass ID: {record.secure_pass_id}",
              fill="black", font=font)

    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


async def sync_pass_image(record: DonationPass, blobs) -> Dict[str, Any]:
    # a failed upload leaves the pass valid; the caller may retry later
    filename = f"pass-{record.display_transaction_id}.png"
    try:
        ref = await blobs.upload(render_pass_png(record), filename,
                                 "image/png")
    except StoreError as e:
        logger.warning("pass image upload failed for %s: %s",
                       record.secure_pass_id, e)
        return {"status": "pending", "error": e.message}
    return {"status": "synced", "ref": ref}
