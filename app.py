import os
import traceback

from flask import Blueprint, Flask, current_app, jsonify, request, send_file, url_for
from flask_cors import CORS
from werkzeug.utils import secure_filename

import config
from container import CorruptHeader, SignatureMismatch, TruncatedHeader, VersionMismatch
from file_compression import (
    IntegrityMismatch,
    TruncatedPayload,
    compress_file,
    decompress_file,
    list_contents,
)
from huffman import EmptyFrequencyTable

# Errors that mean the upload is not a usable .huf file
FORMAT_ERRORS = (SignatureMismatch, VersionMismatch, TruncatedHeader, CorruptHeader,
                 EmptyFrequencyTable, TruncatedPayload)

files = Blueprint("files", __name__)


# -----------------------------------------------------------
# HELPER FUNCTIONS
# -----------------------------------------------------------
def error(message, status):
    return jsonify({"success": False, "error": message}), status


def upload_dir():
    path = current_app.config.get("UPLOAD_DIR", config.UPLOAD_DIR)
    os.makedirs(path, exist_ok=True)
    return path


def save_upload(field="file"):
    """Stores the uploaded file under a safe name. Returns its path or None."""
    file = request.files.get(field)
    if not file or not file.filename:
        return None
    filename = secure_filename(file.filename)
    if not filename:
        return None
    input_path = os.path.join(upload_dir(), filename)
    file.save(input_path)
    return input_path


def decompressed_name(stored_name, input_path):
    """
    Safe name for the restored file. Falls back to the upload name without
    .huf when the stored name sanitizes to nothing or would replace a
    stored container.
    """
    name = secure_filename(stored_name)
    if not name or name.endswith(config.COMPRESSED_EXTENSION):
        name = os.path.basename(input_path)[:-len(config.COMPRESSED_EXTENSION)]
    return name or "decompressed"


# -----------------------------------------------------------
# ROUTES
# -----------------------------------------------------------
@files.route("/compress", methods=["POST"])
def compress_route():
    try:
        input_path = save_upload()
        if not input_path:
            return error("No file uploaded", 400)

        output_path = compress_file(input_path, upload_dir())

        original_size = os.path.getsize(input_path)
        compressed_size = os.path.getsize(output_path)
        saved = original_size - compressed_size
        saved_percent = round(saved / original_size * 100, 2) if original_size else 0
        compressed_filename = os.path.basename(output_path)

        return jsonify({
            "success": True,
            "filename": os.path.basename(input_path),
            "compressed_filename": compressed_filename,
            "original_size": original_size,
            "compressed_size": compressed_size,
            "saved": saved,
            "saved_percent": saved_percent,
            "download_url": url_for(".download", filename=compressed_filename),
        })

    except ValueError as e:
        return error(str(e), 400)
    except Exception as e:
        print("Error in /compress:", e)
        traceback.print_exc()
        return error("Internal server error", 500)


@files.route("/decompress", methods=["POST"])
def decompress_route():
    try:
        input_path = save_upload()
        if not input_path:
            return error("No file uploaded", 400)
        if not input_path.endswith(config.COMPRESSED_EXTENSION):
            return error("Invalid file type", 400)

        stored_name = list_contents(input_path)["name"]
        output_path = decompress_file(input_path, upload_dir(), overwrite=True,
                                      output_name=decompressed_name(stored_name, input_path))
        decompressed_file = os.path.basename(output_path)

        return jsonify({
            "success": True,
            "original_huf": os.path.basename(input_path),
            "decompressed_file": decompressed_file,
            "original_size": os.path.getsize(output_path),
            "download_url": url_for(".download", filename=decompressed_file),
        })

    except FORMAT_ERRORS as e:
        return error(str(e), 400)
    except IntegrityMismatch as e:
        return error(str(e), 422)
    except ValueError as e:
        return error(str(e), 400)
    except Exception as e:
        print("Error in /decompress:", e)
        traceback.print_exc()
        return error("Internal server error", 500)


@files.route("/list", methods=["POST"])
def list_route():
    try:
        input_path = save_upload()
        if not input_path:
            return error("No file uploaded", 400)
        listing = list_contents(input_path)
        listing["success"] = True
        return jsonify(listing)

    except FORMAT_ERRORS as e:
        return error(str(e), 400)
    except Exception as e:
        print("Error in /list:", e)
        traceback.print_exc()
        return error("Internal server error", 500)


@files.route("/download/<filename>")
def download(filename):
    file_path = os.path.join(upload_dir(), secure_filename(filename))
    if not os.path.exists(file_path):
        return "File not found", 404
    return send_file(file_path, as_attachment=True, download_name=os.path.basename(file_path),
                     mimetype="application/octet-stream")


# -----------------------------------------------------------
# FLASK APP SETUP
# -----------------------------------------------------------
def create_app(overrides=None):
    app = Flask(__name__)
    app.config.update(
        SECRET_KEY=config.SECRET_KEY,
        MAX_CONTENT_LENGTH=config.MAX_CONTENT_LENGTH,
        UPLOAD_DIR=config.UPLOAD_DIR,
    )
    if overrides:
        app.config.update(overrides)
    CORS(app)
    app.register_blueprint(files)
    return app


app = create_app()

# -----------------------------------------------------------
if __name__ == "__main__":
    app.run(debug=True)
