import logging
import os
from datetime import datetime

import bcrypt
from flask import Flask, request, jsonify, make_response
from flask_cors import CORS
from flask_login import LoginManager, UserMixin, login_user, login_required, logout_user, current_user
from flask_sqlalchemy import SQLAlchemy

from feasibility import InvalidInput, SiteInputs, calculate_comprehensive_feasibility
from recommendations import STRUCTURE_CATALOG, find_structure
from report import build_feasibility_report
from weather import DataUnavailable, GeocodingClient, LocationNotFound, WeatherClient

logger = logging.getLogger(__name__)

# Initialize the Flask app
app = Flask(__name__)
CORS(app, supports_credentials=True)  # Allow cross-origin requests from the browser UI

# --- Configuration ---
app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'your-secret-key-change-in-production')
# In-memory by default: the demo account is re-seeded on every start
app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv('DATABASE_URL', 'sqlite://')
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
app.config['OPENWEATHER_API_KEY'] = os.getenv('OPENWEATHER_API_KEY')
app.config['NOMINATIM_USER_AGENT'] = os.getenv('NOMINATIM_USER_AGENT', 'rainwise-feasibility/1.0')
app.config['HTTP_TIMEOUT'] = float(os.getenv('HTTP_TIMEOUT', '15'))
app.config['PING_MESSAGE'] = os.getenv('PING_MESSAGE', 'ping')
app.config['DEMO_USER_EMAIL'] = os.getenv('DEMO_USER_EMAIL', 'demo@jalrakshak.in')
app.config['DEMO_USER_PASSWORD'] = os.getenv('DEMO_USER_PASSWORD', 'demo123')
app.config['DEMO_USER_NAME'] = os.getenv('DEMO_USER_NAME', 'Demo User')

db = SQLAlchemy(app)

# Initialize Flask-Login
login_manager = LoginManager()
login_manager.init_app(app)

geocoder = GeocodingClient(
    user_agent=app.config['NOMINATIM_USER_AGENT'],
    timeout=app.config['HTTP_TIMEOUT']
)
weather_client = WeatherClient(
    openweather_api_key=app.config['OPENWEATHER_API_KEY'],
    timeout=app.config['HTTP_TIMEOUT']
)


# --- Demo User Model ---
class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(80))
    password_hash = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_login = db.Column(db.DateTime)

    def set_password(self, password):
        """Hash and set the password"""
        password_bytes = password.encode('utf-8')
        self.password_hash = bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode('utf-8')

    def check_password(self, password):
        """Check if the provided password matches the hash"""
        password_bytes = password.encode('utf-8')
        return bcrypt.checkpw(password_bytes, self.password_hash.encode('utf-8'))

    def to_dict(self):
        return {'id': str(self.id), 'email': self.email, 'name': self.name}


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'message': 'Authentication required'}), 401


def init_db():
    """Create tables and seed the demo account if it is missing."""
    db.create_all()
    email = app.config['DEMO_USER_EMAIL'].lower()
    if not User.query.filter_by(email=email).first():
        user = User(email=email, name=app.config['DEMO_USER_NAME'])
        user.set_password(app.config['DEMO_USER_PASSWORD'])
        db.session.add(user)
        db.session.commit()
        logger.info("Demo user created: %s", email)


# --- Error Handlers ---

@app.errorhandler(InvalidInput)
def handle_invalid_input(e):
    return jsonify({'error': str(e)}), 400


@app.errorhandler(LocationNotFound)
def handle_location_not_found(e):
    return jsonify({'error': str(e)}), 404


@app.errorhandler(DataUnavailable)
def handle_data_unavailable(e):
    logger.warning("Upstream data unavailable: %s", e)
    return jsonify({'error': str(e)}), 502


def _coordinates_from_args():
    lat = request.args.get('lat')
    lon = request.args.get('lon')
    if not lat or not lon:
        raise InvalidInput('lat and lon are required')
    return lat, lon


def _site_inputs_from_request():
    return SiteInputs.from_mapping(request.get_json(silent=True))


# --- API Routes ---

@app.route('/api/ping')
def ping():
    return jsonify({'message': app.config['PING_MESSAGE']})


@app.route('/api/calculate', methods=['POST'])
def api_calculate():
    """Run the feasibility engine on the posted site inputs."""
    inputs = _site_inputs_from_request()
    return jsonify(calculate_comprehensive_feasibility(inputs))


@app.route('/api/report', methods=['POST'])
def download_report():
    inputs = _site_inputs_from_request()
    analysis = calculate_comprehensive_feasibility(inputs)
    pdf_bytes = build_feasibility_report(inputs, analysis)

    filename = (inputs.name or 'Resident').replace(' ', '_')
    response = make_response(pdf_bytes)
    response.headers['Content-Type'] = 'application/pdf'
    response.headers['Content-Disposition'] = f'attachment; filename=RWH_Report_{filename}.pdf'
    return response


@app.route('/api/geocode')
def api_geocode():
    return jsonify(geocoder.resolve(request.args.get('q', '')))


@app.route('/api/forecast')
def api_forecast():
    lat, lon = _coordinates_from_args()
    return jsonify(weather_client.get_forecast(lat, lon))


@app.route('/api/weather')
def api_weather():
    lat, lon = _coordinates_from_args()
    if not weather_client.openweather_available():
        return jsonify({'error': 'Missing OPENWEATHER_API_KEY'}), 500
    return jsonify(weather_client.get_current_conditions(lat, lon))


@app.route('/api/rainfall/annual')
def api_annual_rainfall():
    lat, lon = _coordinates_from_args()
    year = request.args.get('year', type=int) or datetime.now().year - 1
    return jsonify(weather_client.get_annual_history(lat, lon, year))


@app.route('/api/structures')
def api_structures():
    query = request.args.get('q', '')
    if not query.strip():
        return jsonify(STRUCTURE_CATALOG)
    structure = find_structure(query)
    if structure is None:
        return jsonify({'error': f'No structure matches {query!r}'}), 404
    return jsonify(structure)


# --- AUTH ROUTES ---

@app.route('/api/login', methods=['POST'])
def api_login():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'message': 'Please enter both email and password.'}), 400
    email = str(data.get('email') or '').strip().lower()
    password = str(data.get('password') or '')

    if not email or not password:
        return jsonify({'message': 'Please enter both email and password.'}), 400

    user = User.query.filter_by(email=email).first()
    if user is None or not user.check_password(password):
        logger.info("Failed login attempt for %s", email)
        return jsonify({'message': 'Invalid credentials'}), 401

    login_user(user)
    user.last_login = datetime.utcnow()
    db.session.commit()
    return jsonify(user.to_dict())


@app.route('/api/logout', methods=['POST'])
def api_logout():
    logout_user()
    return jsonify({'message': 'You have been logged out successfully.'})


@app.route('/api/me')
@login_required
def api_me():
    return jsonify(current_user.to_dict())


with app.app_context():
    init_db()


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    app.run(host='0.0.0.0', port=int(os.getenv('PORT', '8000')))
