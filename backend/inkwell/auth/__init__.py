from inkwell.auth.tokens import Claims, TokenAuthenticator

__all__ = ["Claims", "TokenAuthenticator"]
