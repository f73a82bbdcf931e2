from dotenv import load_dotenv
load_dotenv()

from taverna import create_app

app = create_app()

if __name__ == '__main__':
    # Auto-reload and tracebacks only when FLASK_ENV=development.
    # The API listens on PORT (default 5001) on all interfaces.
    import os
    debug = os.environ.get('FLASK_ENV') == 'development'
    port = int(os.environ.get('PORT', 5001))
    app.run(debug=debug, host='0.0.0.0', port=port)
