"""
Manual UPI payment helpers (no gateway integration; staff verify each payment)
"""
import re
from urllib.parse import urlencode, quote

from flask import current_app

UPI_REF_RE = re.compile(r'^[A-Za-z0-9\-]{6,64}$')
VPA_RE = re.compile(r'^[A-Za-z0-9.\-_]{2,256}@[A-Za-z]{2,64}$')


def validate_payment_reference(reference):
    """UPI transaction reference (UTR) as typed by the customer"""
    return bool(reference) and UPI_REF_RE.match(reference) is not None


def build_upi_uri(order):
    """
    upi://pay deep link for the order total, or None if no payee VPA is configured.
    The order id goes into the transaction note so staff can match the credit.
    """
    vpa = current_app.config.get('UPI_VPA')
    if not vpa or not VPA_RE.match(vpa):
        return None
    params = {
        'pa': vpa,
        'pn': current_app.config.get('UPI_PAYEE_NAME') or 'ChemSus',
        'am': f"{order.totalprice:.2f}",
        'cu': 'INR',
        'tn': f"Order {order.id}",
    }
    return "upi://pay?" + urlencode(params, quote_via=quote)
