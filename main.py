from flask import Flask, request, jsonify
from flask_cors import CORS
from quote_engine import QuoteProcessor
from quote_engine.errors import ConfigurationMissingError
import os
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ENVIRONMENT = os.environ.get("ENVIRONMENT", "dev")

app = Flask(__name__)

# Enable CORS for all routes
CORS(app)

# Pure calculations only; no store is wired behind the HTTP surface
processor = QuoteProcessor()


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Quote Engine API",
        "version": "1.0",
        "environment": ENVIRONMENT,
        "endpoints": {
            "calculate_pricing": "/pricing/calculate [POST]",
            "resolve_payment": "/payments/resolve [POST]",
            "promise_state": "/promises/state [POST]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy", "environment": ENVIRONMENT}), 200


def _run(label, handler):
    """Parse the JSON body, run handler on it and map errors to responses."""
    try:
        input_data = request.get_json(force=True, silent=True)

        if not input_data:
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        logger.info(f"Processing {label}")
        result = handler(input_data)
        logger.info(f"{label} processed successfully")

        return jsonify(result), 200

    except ConfigurationMissingError as e:
        logger.error(f"Configuration error: {str(e)}")
        return jsonify({
            "error": str(e),
            "status": "configuration_missing"
        }), 422

    except (ValueError, KeyError, TypeError) as e:
        # Validation errors from engine
        logger.error(f"Validation error: {str(e)}")
        return jsonify({
            "error": f"Validation error: {str(e)}",
            "status": "validation_failed"
        }), 400

    except Exception as e:
        # Unexpected errors
        logger.error(f"Processing error: {str(e)}", exc_info=True)
        return jsonify({
            "error": "An unexpected error occurred during processing",
            "status": "failed"
        }), 500


@app.route("/pricing/calculate", methods=["POST"])
def calculate_pricing():
    """Price a bundle of billable entries"""
    return _run("pricing request", processor.calculate_pricing_from_dict)


@app.route("/payments/resolve", methods=["POST"])
def resolve_payment():
    """Resolve the payable total and advance/deferred split"""
    return _run("payment resolution", processor.resolve_payment_from_dict)


@app.route("/promises/state", methods=["POST"])
def promise_state():
    """Resolve the lifecycle state of a promise from its stage and quotes"""
    return _run("promise state", processor.resolve_promise_state_from_dict)


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)
