# app.py - 배포용 진입점 (gunicorn app:app)
import os

from echotube.app import create_app

app = create_app()

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 3001))
    app.run(host="0.0.0.0", port=port, debug=False)
