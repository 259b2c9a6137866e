PURCHASE_CREDIT_KEY = "credit:payment:{payment_id}"
SUBSCRIPTION_BONUS_KEY = "credit:subscription:{subscription_id}"

PAYMENT_SOURCES = ("user", "auto_topup", "system")
RECONCILE_SOURCES = ("webhook", "poll", "manual")
