"""QR Notify: QR-triggered vehicle-owner alerts with abuse-resistant rate limiting."""
