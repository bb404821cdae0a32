from axioquan.services.session import CookieJar, SessionManager, get_session_manager

__all__ = ["CookieJar", "SessionManager", "get_session_manager"]
