import os

# -----------------------------------------------------------
# I/O
# -----------------------------------------------------------
# Largest chunk handed to the encoder/decoder at once
MAX_BUFFER = int(os.getenv("ANHC_MAX_BUFFER", "8192"))

# Appended to (or replacing) the extension of compressed files
COMPRESSED_EXTENSION = ".huf"

# -----------------------------------------------------------
# PATH CONFIGURATION
# -----------------------------------------------------------
BASE_DIR = os.path.abspath(os.path.dirname(__file__))
DATA_DIR = os.getenv("ANHC_DATA_DIR", os.path.join(BASE_DIR, "data"))
UPLOAD_DIR = os.path.join(DATA_DIR, "uploads")

# -----------------------------------------------------------
# WEB SERVICE
# -----------------------------------------------------------
SECRET_KEY = os.getenv("ANHC_SECRET_KEY", "dev")  # set in production
MAX_CONTENT_LENGTH = int(os.getenv("ANHC_MAX_UPLOAD", str(64 * 1024 * 1024)))
