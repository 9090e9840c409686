from prometheus_client import Counter

CART_ADDS = Counter("shop_cart_adds_total", "Items added to the cart")
CART_REJECTED = Counter("shop_cart_rejections_total", "Rejected cart mutations", ["reason"])
ORDERS_CREATED = Counter("shop_orders_created_total", "Orders created successfully")
ORDERS_FAILED = Counter("shop_order_failures_total", "Order create failures", ["reason"])
