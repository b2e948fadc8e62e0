"""서비스 패키지 — 인증 비즈니스 로직 계층.

Service package — Session lifecycle logic.
The auth service orchestrates credential verification, token issuance and
the session store. Routers commit the transaction after a service call.
"""
