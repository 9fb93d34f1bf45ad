from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect

# Define extensions here without initializing with app
db = SQLAlchemy()
login_manager = LoginManager()
csrf = CSRFProtect()
