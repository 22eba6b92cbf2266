"""
Services package - organized service modules.

Each module exposes a service class, a singleton instance and a
`get_*_service` dependency helper for the routes.
"""
from .base import *
from .auth_service import AuthService, auth_service, get_auth_service
from .activity_service import ActivityService, activity_service, get_activity_service
from .slot_service import SlotService, slot_service, get_slot_service
from .booking_service import BookingService, booking_service, get_booking_service
from .cancellation_service import CancellationService, cancellation_service, get_cancellation_service
from .market_service import MarketService, market_service, get_market_service
from .wallet_service import WalletService, wallet_service, get_wallet_service
from .user_service import UserService, user_service, get_user_service
from .dashboard_service import DashboardService, dashboard_service, get_dashboard_service
from .session_history_service import SessionHistoryService, session_history_service, get_session_history_service
from .report_service import ReportService, report_service, get_report_service
from .health_chat_service import HealthChatService, health_chat_service, get_health_chat_service
from .email_service import EmailService, email_service

__all__ = [
    'AuthService', 'auth_service', 'get_auth_service',
    'ActivityService', 'activity_service', 'get_activity_service',
    'SlotService', 'slot_service', 'get_slot_service',
    'BookingService', 'booking_service', 'get_booking_service',
    'CancellationService', 'cancellation_service', 'get_cancellation_service',
    'MarketService', 'market_service', 'get_market_service',
    'WalletService', 'wallet_service', 'get_wallet_service',
    'UserService', 'user_service', 'get_user_service',
    'DashboardService', 'dashboard_service', 'get_dashboard_service',
    'SessionHistoryService', 'session_history_service', 'get_session_history_service',
    'ReportService', 'report_service', 'get_report_service',
    'HealthChatService', 'health_chat_service', 'get_health_chat_service',
    'EmailService', 'email_service',
]
