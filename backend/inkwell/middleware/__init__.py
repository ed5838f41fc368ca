"""
Inkwell Backend: Middleware Package
====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Recovery] → [CORS] → [Logging] → [Rate Limit] → Router

    1. Request ID: correlation id shared by every log line of the request
    2. Recovery: converts any escaped exception into a 500 envelope
    3. CORS: answers preflight requests before they are counted or logged
    4. Logging: records every request, including rate-limited ones
    5. Rate Limit: rejects over-quota clients before routing and auth

Authentication is not a middleware: protected routers declare the
`require_claims` dependency, so public routes never touch the token.
"""
