# Inventory
from app.models.inventory.product_models import Product
from app.models.inventory.inventory_stock_models import InventoryStock
from app.models.inventory.inventory_movement_models import InventoryMovement

# Orders
from app.models.orders.sales_order_models import SalesOrder, SalesOrderItem
from app.models.orders.qr_token_models import SalesOrderQrToken
