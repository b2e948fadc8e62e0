"""레포지토리 패키지 — 데이터베이스 쿼리 계층.

Repository package — Database query layer.
user_repository reads user records for authentication; auth_repository is
the refresh-token session store. Driver errors surface as StorageError.
"""
