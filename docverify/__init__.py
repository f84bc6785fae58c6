"""Document verification service.

Confirms an uploaded document carries its claimed number via OCR, checks the
number against an authorization list, anchors the file hash on a blockchain,
pins the file to IPFS and issues a QR code whose full details are released
only to the document owner's wallet.
"""

__version__ = "1.0.0"
