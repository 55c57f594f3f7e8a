from app.models.user import User
from app.models.otp import OtpChallenge
from app.models.product import Product
from app.models.order import Order, OrderItem
from app.db.session import engine, Base

def init_db(bind=None):
    # Create all tables
    Base.metadata.create_all(bind=bind or engine)
