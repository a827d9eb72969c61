from dotenv import load_dotenv

# Load environment variables before the config singleton is built
load_dotenv()

from renshu import create_app
from renshu.config import config

app = create_app()

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=config.PORT, debug=True, use_reloader=False)
