"""
Message / dispatch status constants - centralized to avoid circular imports.
"""

# Message direction
DIRECTION_INBOUND = "inbound"
DIRECTION_OUTBOUND = "outbound"

# Outbound delivery status (Meta status callbacks update sent -> delivered -> read)
DELIVERY_SENT = "sent"
DELIVERY_DRY_RUN = "dry_run"
DELIVERY_FAILED = "failed"
DELIVERY_RECEIVED = "received"
DELIVERY_DELIVERED = "delivered"
DELIVERY_READ = "read"

# Reminder types stored in Message.meta["reminder_type"]
REMINDER_VENDOR_LOCATION_OPEN = "vendor_location_open"
REMINDER_SUPPORT_PROMPT = "support_prompt"

# DispatchLog types
DISPATCH_OPEN = "open"
DISPATCH_SUPPORT_PROMPT = "support_prompt"
DISPATCH_ANNOUNCEMENT = "announcement"
DISPATCH_WEEKLY = "weekly"

# Admin roles
ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "super_admin"
ROLE_ONGROUND = "onground"
ADMIN_ROLES = (ROLE_ADMIN, ROLE_SUPER_ADMIN, ROLE_ONGROUND)

# Vendor food types
FOOD_TYPES = ("veg", "nonveg", "swaminarayan", "jain")
