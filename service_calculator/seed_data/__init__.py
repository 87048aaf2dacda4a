"""Demo data bundled with the package.

The demo catalog and demo session are built from these records, so the whole
quote flow can be exercised without a configured Supabase project. Callers
must copy before mutating (DemoCatalog deep-copies on load).
"""

DEMO_USER = {
    "id": "demo-user-1",
    "email": "demo@arclabs.io",
    "name": "Demo User",
}

DEMO_BUSINESS = {
    "id": "demo-biz-1",
    "user_id": "demo-user-1",
    "business_name": "Pro Cleaning Services",
    "contact_email": "contact@procleaning.demo",
    "contact_phone": "(555) 123-4567",
    "address": "123 Main St, Miami, FL 33101",
    "brand_color": "#007da5",
    "secondary_color": "#0a0a0a",
    "logo_url": None,
    "tax_rate": 0,
}

DEMO_SERVICES = [
    {
        "id": "svc-1",
        "name": "Standard Cleaning",
        "description": "Basic cleaning for homes and apartments",
        "base_price": 120,
        "pricing_model": "fixed",
        "price_unit": "job",
        "is_active": True,
        "add_ons": [
            {"id": "ao-1", "name": "Inside Fridge", "price": 25},
            {"id": "ao-2", "name": "Inside Oven", "price": 30},
            {"id": "ao-3", "name": "Window Cleaning", "price": 8},
        ],
    },
    {
        "id": "svc-2",
        "name": "Deep Cleaning",
        "description": "Thorough cleaning including baseboards, vents, and detailed work",
        "base_price": 0.15,
        "pricing_model": "fixed",
        "price_unit": "sqft",
        "is_active": True,
        "add_ons": [
            {"id": "ao-4", "name": "Carpet Shampooing", "price": 75},
            {"id": "ao-5", "name": "Tile & Grout Scrub", "price": 60},
        ],
    },
    {
        "id": "svc-3",
        "name": "Move-In/Move-Out",
        "description": "Complete cleaning for property transitions",
        "base_price": 250,
        "pricing_model": "fixed",
        "price_unit": "job",
        "is_active": True,
        "add_ons": [
            {"id": "ao-6", "name": "Garage Cleaning", "price": 50},
            {"id": "ao-7", "name": "Exterior Windows", "price": 100},
        ],
    },
    {
        "id": "svc-4",
        "name": "Hourly Labor",
        "description": "General labor at hourly rate",
        "base_price": 45,
        "pricing_model": "hourly",
        "price_unit": "hour",
        "is_active": True,
        "add_ons": [],
    },
    {
        "id": "svc-5",
        "name": "TV Mounting",
        "description": "Professional TV installation",
        "base_price": 100,
        "pricing_model": "fixed",
        "price_unit": "tv",
        "is_active": True,
        "add_ons": [
            {"id": "ao-10", "name": "Cord Concealment", "price": 50},
            {"id": "ao-11", "name": "Sound Bar Install", "price": 35},
        ],
    },
]

DEMO_QUOTES = [
    {"id": "q-1", "business_id": "demo-biz-1", "invoice_number": "20260219-A1B2",
     "client_name": "John Smith", "client_email": "john.smith@example.com",
     "service_name": "Deep Cleaning", "total_amount": 450, "status": "pending",
     "created_at": "2026-02-19T10:00:00"},
    {"id": "q-2", "business_id": "demo-biz-1", "invoice_number": "20260218-C3D4",
     "client_name": "Sarah Johnson", "client_email": "sarah.j@example.com",
     "service_name": "Standard Cleaning", "total_amount": 350, "status": "paid",
     "created_at": "2026-02-18T10:00:00"},
    {"id": "q-3", "business_id": "demo-biz-1", "invoice_number": "20260217-E5F6",
     "client_name": "Mike Wilson", "client_email": "mwilson@example.com",
     "service_name": "Move-Out Clean", "total_amount": 275, "status": "pending",
     "created_at": "2026-02-17T10:00:00"},
]
