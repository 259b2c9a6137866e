from app.economy.autotopup.service import AutoTopupService
from app.economy.autotopup.types import AutoTopupSettingsView

__all__ = ["AutoTopupService", "AutoTopupSettingsView"]
