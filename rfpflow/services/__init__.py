"""
services/ — Business logic behind the routers.

Each module takes a Session plus its collaborators (extractor, mailer)
explicitly and raises AppError subclasses for the routers to translate.
"""
