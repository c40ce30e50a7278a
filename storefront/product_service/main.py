# storefront/product_service/main.py
from fastapi import FastAPI, HTTPException

app = FastAPI(title="Product Service (dev mock)")


VARIANTS = {
    "kbd-black": {
        "id": "kbd-black",
        "name": "Keyboard (black)",
        "price": "199.99",
        "sale_price": None,
        "stock_level": 25,
        "image_url": "/static/keyboard-black.png",
    },
    "mouse-white": {
        "id": "mouse-white",
        "name": "Mouse (white)",
        "price": "49.50",
        "sale_price": "39.90",
        "stock_level": 40,
        "image_url": "/static/mouse-white.png",
    },
    "monitor-27": {
        "id": "monitor-27",
        "name": "Monitor 27\"",
        "price": "899.00",
        "sale_price": None,
        "stock_level": 3,
        "image_url": "https://cdn.example.com/monitor-27.jpg",
    },
}


@app.get("/variants/{variant_id}")
def get_variant(variant_id: str):
    variant = VARIANTS.get(variant_id)
    if not variant:
        raise HTTPException(status_code=404, detail="Variant not found")
    return variant
