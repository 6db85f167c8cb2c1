"""
Notifications package - billing e-mails to factory owners and admins.

Delivery is best-effort: failures are logged and never propagate to the
webhook that triggered them.
"""
