# salon/data.py

# Seeded into an empty database: (name, price, duration minutes)
DEFAULT_SERVICES = [
    ("Eyebrow Shaping", 800.0, 15),
    ("Beard Trim", 900.0, 15),
    ("Hair Wash", 500.0, 15),
    ("Haircut", 1500.0, 30),
    ("Blow Dry", 1200.0, 30),
    ("Manicure", 1800.0, 45),
    ("Hair Coloring", 4500.0, 90),
    ("Highlights", 6000.0, 120),
]

# Durations an admin may pick when blocking a specific time
BLOCK_DURATIONS = (15, 30, 45, 60, 90, 120, 150, 180)
MAX_FULL_DAY_BLOCK_DAYS = 7

BLOCKED_FIRST_NAME = "Blocked"
BLOCKED_LAST_NAME = "Time"
BLOCKED_SERVICE_NAME = "Blocked Time"

# Request rate limits: (max requests, window seconds)
RATE_LIMITS = {
    "appointments": (10, 60 * 60),
    "admin_appointments": (100, 60 * 60),
    "admin_appointment_updates": (100, 60 * 60),
}
