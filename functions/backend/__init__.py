"""
Backend package for BeanBook.

Manager objects wrap the Firebase backend (Auth, Firestore, Storage,
Messaging) with in-memory stand-ins for development and tests, and a
FastAPI application exposes them over HTTP.
"""
