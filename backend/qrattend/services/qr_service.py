# backend/qrattend/services/qr_service.py
"""QR token minting, scan URL encoding and QR image rendering."""
import qrcode
import io
import base64
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple
from urllib.parse import parse_qs, urlencode, urlsplit

class QRService:
    """Service for QR code operations."""

    @staticmethod
    def generate_token() -> str:
        """Opaque random token, unique per activation."""
        return secrets.token_urlsafe(32)

    @staticmethod
    def mint(now: datetime, validity_hours: float = 4) -> Tuple[str, datetime]:
        """Fresh token and its expiry."""
        return QRService.generate_token(), now + timedelta(hours=validity_hours)

    @staticmethod
    def build_scan_url(base_url: str, token: str, session_id) -> str:
        """URL a scanned code resolves to; the scanning client forwards both params."""
        query = urlencode({'token': token, 'session': session_id})
        return f"{base_url.rstrip('/')}/scan?{query}"

    @staticmethod
    def parse_scan_url(url: str) -> Tuple[Optional[str], Optional[str]]:
        """
        Extract the token and session from a scanned URL.
        Returns: (token, session_id), either may be None
        """
        if not url:
            return None, None
        params = parse_qs(urlsplit(url).query)
        token = params.get('token', [None])[0]
        session_id = params.get('session', [None])[0]
        return token, session_id

    @staticmethod
    def render_data_uri(data: str) -> str:
        """Render data as a PNG QR code encoded as a data URI."""
        qr = qrcode.QRCode(
            version=None,  # Auto-determine size
            error_correction=qrcode.constants.ERROR_CORRECT_H,  # High error correction
            box_size=10,
            border=4,
        )
        qr.add_data(data)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffered = io.BytesIO()
        img.save(buffered, format="PNG")
        img_str = base64.b64encode(buffered.getvalue()).decode()

        return f"data:image/png;base64,{img_str}"
