# main.py
import os

from edu_portal.main import create_app

# Create the Flask app instance for Gunicorn to find
app = create_app()

if __name__ == "__main__":
    # Note: For production, use a WSGI server like Gunicorn
    # The host='0.0.0.0' makes it accessible on the network
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=app.config["APP_ENV"] != "production")
