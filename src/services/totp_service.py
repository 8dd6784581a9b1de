"""TOTP (RFC 6238) helpers for authenticator-app enrollment and verification."""

import base64
from datetime import datetime
from io import BytesIO

import pyotp
import qrcode

CODE_DIGITS = 6
# ±1 step of 30s
DEFAULT_VALID_WINDOW = 1


def generate_secret() -> str:
    """Fresh base32 shared secret."""
    return pyotp.random_base32()


def provisioning_uri(secret: str, account_name: str, issuer: str) -> str:
    """otpauth:// URI that authenticator apps read from the QR code."""
    return pyotp.TOTP(secret).provisioning_uri(name=account_name, issuer_name=issuer)


def current_code(secret: str, for_time: datetime | int | None = None) -> str:
    totp = pyotp.TOTP(secret)
    if for_time is None:
        return totp.now()
    return totp.at(for_time)


def verify_code(
    secret: str,
    code: str,
    valid_window: int = DEFAULT_VALID_WINDOW,
    for_time: datetime | int | None = None,
) -> bool:
    """Check a 6-digit code against the secret with bounded clock skew."""
    if not secret or code is None:
        return False
    code = str(code).strip().replace(" ", "")
    if len(code) != CODE_DIGITS or not code.isdigit():
        return False

    totp = pyotp.TOTP(secret)
    if for_time is None:
        return totp.verify(code, valid_window=valid_window)
    return totp.verify(code, for_time=for_time, valid_window=valid_window)


def qr_code_data_url(uri: str) -> str:
    """Render the provisioning URI as a PNG data URL."""
    qr = qrcode.QRCode(version=1, box_size=10, border=4)
    qr.add_data(uri)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"
