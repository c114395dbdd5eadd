# Routers module for SeatPool API
from app.routers import join
