"""
Cart Router

Thin HTTP layer over the process cart. Every mutation answers with the
resulting cart; persistence happens in the background.
"""
from fastapi import APIRouter, Depends, HTTPException, Request

from gomarket.cart import CartStore, ProductInput, require_cart
from gomarket.cart.models import CartCollection, total_items
from .models import AddToCartRequest, CartItemResponse, CartResponse


router = APIRouter(prefix="/api/cart", tags=["cart"])


def get_cart(request: Request) -> CartStore:
    """Resolve the cart started by the app lifespan. Raises if it was never wired."""
    return require_cart(getattr(request.app.state, "cart", None))


def _cart_response(collection: CartCollection) -> CartResponse:
    return CartResponse(
        items=[
            CartItemResponse(
                id=item.id,
                title=item.title,
                image_url=item.image_url,
                price=float(item.price),
                quantity=item.quantity,
            )
            for item in collection
        ],
        total_items=total_items(collection),
    )


@router.get("", response_model=CartResponse, response_model_by_alias=True)
async def get_cart_contents(cart: CartStore = Depends(get_cart)):
    """Current cart."""
    return _cart_response(cart.products)


@router.post("/items", response_model=CartResponse, response_model_by_alias=True)
async def add_to_cart(request: AddToCartRequest, cart: CartStore = Depends(get_cart)):
    """Add one unit of a product."""
    try:
        product = ProductInput(
            id=request.id,
            title=request.title,
            image_url=request.image_url,
            price=request.price,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _cart_response(cart.add_to_cart(product))


@router.post("/items/{item_id}/increment", response_model=CartResponse, response_model_by_alias=True)
async def increment_item(item_id: str, cart: CartStore = Depends(get_cart)):
    return _cart_response(cart.increment(item_id))


@router.post("/items/{item_id}/decrement", response_model=CartResponse, response_model_by_alias=True)
async def decrement_item(item_id: str, cart: CartStore = Depends(get_cart)):
    return _cart_response(cart.decrement(item_id))
