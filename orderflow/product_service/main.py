# orderflow/product_service/main.py
import threading

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

app = FastAPI(title="Product Service (dev mock)")

_stock_lock = threading.Lock()

PRODUCTS = {
    1: {
        "id": 1, "name": "Home Jersey", "price": 500.00, "status": "Active",
        "category": ["jerseys"], "team": "tokyo", "image": "/img/home-jersey.png",
        "stock_quantity": 20, "sizes": [{"size": "M", "stock": 10}, {"size": "L", "stock": 10}],
    },
    2: {
        "id": 2, "name": "Away Jersey", "price": 500.00, "status": "Active",
        "category": ["jerseys"], "team": "tokyo", "image": "/img/away-jersey.png",
        "stock_quantity": 8, "sizes": [{"size": "M", "stock": 4}, {"size": "L", "stock": 4}],
    },
    3: {
        "id": 3, "name": "Training Shorts", "price": 199.00, "status": "Active",
        "category": ["shorts"], "team": "osaka", "image": "/img/shorts.png",
        "stock_quantity": 15, "sizes": [{"size": "S", "stock": 5}, {"size": "M", "stock": 10}],
    },
    4: {
        "id": 4, "name": "Retro Scarf", "price": 99.00, "status": "Draft",
        "category": ["accessories"], "team": "tokyo", "image": None,
        "stock_quantity": 0, "sizes": [{"size": "ONE", "stock": 0}],
    },
}


class StockDelta(BaseModel):
    size: str | None = None
    delta: int


@app.get("/products/{product_id}")
def get_product(product_id: int):
    product = PRODUCTS.get(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@app.post("/products/{product_id}/stock")
def adjust_stock(product_id: int, payload: StockDelta):
    # licznik stanu zmieniany pod lockiem - rownolegle zamowienia na ten sam SKU
    with _stock_lock:
        product = PRODUCTS.get(product_id)
        if not product:
            raise HTTPException(status_code=404, detail="Product not found")

        size_entry = None
        if payload.size:
            size_entry = next((s for s in product["sizes"] if s["size"] == payload.size), None)
            if size_entry is None:
                raise HTTPException(status_code=404, detail="Size not found")

        if product["stock_quantity"] + payload.delta < 0 or (size_entry and size_entry["stock"] + payload.delta < 0):
            raise HTTPException(status_code=409, detail="Stock would go negative")

        product["stock_quantity"] += payload.delta
        if size_entry:
            size_entry["stock"] += payload.delta

    return {"id": product_id, "stock_quantity": product["stock_quantity"], "sizes": product["sizes"]}
