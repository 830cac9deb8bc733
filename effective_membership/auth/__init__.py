from .authenticator import Authenticator, AuthenticationError, SessionInfo

__all__ = ["Authenticator", "AuthenticationError", "SessionInfo"]
