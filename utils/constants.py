"""
utils/constants.py

Purpose: Centralized static values

- Collection names and object storage prefixes
- Document status vocabularies
- Callable function names
- User-facing messages reused across services

(Prevents hardcoding across the codebase)
"""

# ============================================================
# COLLECTIONS
# ============================================================

USERS_COLLECTION = "users"
ADMIN_USERS_COLLECTION = "admin_users"
WALLETS_COLLECTION = "wallets"
TRANSACTIONS_COLLECTION = "transactions"
TRANSACTION_ACTIVITIES_COLLECTION = "transaction_activities"
KYC_DOCUMENTS_COLLECTION = "kyc_documents"
NOTIFICATIONS_COLLECTION = "notifications"
SUPPORT_TICKETS_COLLECTION = "support_tickets"
TICKET_MESSAGES_COLLECTION = "ticket_messages"
CONTENT_COLLECTION = "content"
FAQ_ITEMS_COLLECTION = "faq_items"

# ============================================================
# OBJECT STORAGE PREFIXES
# ============================================================

PROFILE_IMAGES_PREFIX = "profile_images"
KYC_DOCUMENTS_PREFIX = "kyc_documents"
SUPPORT_ATTACHMENTS_PREFIX = "support_attachments"

# ============================================================
# CALLABLE FUNCTIONS
# ============================================================

FN_CREATE_TRANSACTION = "createTransaction"
FN_REQUEST_MONEY = "requestMoney"
FN_ADD_FUNDS = "addFundsToWallet"
FN_WITHDRAW_FUNDS = "withdrawFundsFromWallet"
FN_APPROVE_KYC = "approveKycDocument"
FN_REJECT_KYC = "rejectKycDocument"
FN_ADJUST_BALANCE = "adjustWalletBalance"
FN_MARK_ALL_NOTIFICATIONS_READ = "markAllNotificationsAsRead"

# ============================================================
# STATUS VOCABULARIES
# ============================================================

ACCOUNT_STATUSES = ("active", "suspended", "closed")

KYC_STATUS_PENDING = "pending"
KYC_STATUSES = ("pending", "verified", "approved", "rejected", "under_review")
KYC_VERIFIED_STATUSES = ("verified", "approved")

KYC_DOCUMENT_TYPES = ("id_card", "passport", "driver_license", "selfie")
KYC_ID_DOCUMENT_TYPES = ("id_card", "passport", "driver_license")
KYC_SELFIE_TYPE = "selfie"

TRANSACTION_STATUSES = ("pending", "completed", "failed")
TRANSACTION_DIRECTION_SENT = "sent"
TRANSACTION_DIRECTION_RECEIVED = "received"

TICKET_STATUSES = ("open", "in_progress", "resolved", "closed")
TICKET_CATEGORIES = ("account", "payment", "kyc", "technical", "other")
TICKET_STATUS_ALL = "all"
DEFAULT_TICKET_PRIORITY = "medium"

TWO_FACTOR_METHODS = ("sms", "app")

TRANSACTION_DATE_RANGES = ("all", "today", "week", "month")

# ============================================================
# MESSAGES
# ============================================================

UNKNOWN_USER_NAME = "Unknown User"
ATTACHMENT_MESSAGE = "Attachment for this ticket:"
TICKET_STATUS_CHANGED_MESSAGE = "Ticket status changed to {status}"

ERROR_SELECT_ID_DOCUMENT = "Please select an ID document to upload"
ERROR_SELECT_SELFIE = "Please select a selfie photo to upload"
ERROR_SELECT_WALLET = "Please select a wallet"
ERROR_RECIPIENT_EMAIL = "Please enter recipient email"
ERROR_INVALID_AMOUNT = "Please enter a valid amount"
ERROR_SUBJECT_REQUIRED = "Please enter a subject"
ERROR_MESSAGE_REQUIRED = "Please enter a message"
ERROR_PASSWORDS_MISMATCH = "Passwords don't match"
