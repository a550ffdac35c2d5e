from .resolvers import (
    AccessCookieIdentity,
    HeaderIdentity,
    IdentityResolver,
    build_identity_resolver,
    email_from_jwt,
)

__all__ = [
    "AccessCookieIdentity",
    "HeaderIdentity",
    "IdentityResolver",
    "build_identity_resolver",
    "email_from_jwt",
]
