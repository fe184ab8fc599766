"""Test environment: set before app modules read settings at import time."""

import os

os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
# Low bcrypt cost keeps the suite fast; production default is 12.
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["MAIL_API_URL"] = ""
os.environ["FRONTEND_URL"] = "http://frontend.test"
