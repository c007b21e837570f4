import base64
from io import BytesIO

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from splitlink import models


def short_url_qr_base64(link: models.Link, public_base_url: str, box_size: int = 8) -> str:
    """PNG QR code of the link's public short URL, base64 encoded."""
    qr = qrcode.QRCode(border=4, box_size=box_size, error_correction=ERROR_CORRECT_M)
    qr.add_data(link.url(public_base_url))
    qr.make(fit=True)

    buf = BytesIO()
    qr.make_image(fill_color="black", back_color="white").save(buf)
    return base64.b64encode(buf.getvalue()).decode()
