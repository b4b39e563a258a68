"""attestview API package.

Optional FastAPI service layer around the normalizer, recognizer, history
store and certificate summaries.
"""

from .server import create_app  # noqa: F401
