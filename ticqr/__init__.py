"""
ticqr - tick box detection and verification for QR-tagged paper forms.

Finds the un-ticked tick boxes on a photographed form and reconciles them
with the tick boxes the server expects, leaving the items the user ticked.
"""

__version__ = "0.1.0"
