import os

from . import create_app
from flask_cors import CORS

app = create_app(os.getenv("APP_CONFIG", "development"))

# Enable CORS for API routes
CORS(app, resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})


if __name__ == "__main__":
    app.run(
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "5000")),
        debug=app.config.get("DEBUG", False),
    )
