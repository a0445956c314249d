from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.customers.dtos import RegisterCustomerDTO
from modules.customers.models import Customer
from modules.customers.services import build_customer_service
from modules.orders.dtos import GuestCustomerDTO, OrderDraftDTO
from modules.orders.services import build_order_service
from modules.products.models import Product, ProductStatus

DEMO_EMAIL = "demo@example.com"
DEMO_PASSWORD = "demo-pass-123"


class Command(BaseCommand):
    help = "Seed database with a small storefront catalog and demo accounts."

    def add_arguments(self, parser):
        parser.add_argument(
            "--orders",
            type=int,
            default=5,
            help="Number of demo orders to place through checkout.",
        )

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        customer = self._seed_customer()
        products = self._seed_products()
        orders_created = self._seed_orders(customer, products, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        if User.objects.filter(username="admin").exists():
            return 0
        User.objects.create_superuser("admin", password="admin-pass-123")
        return 1

    def _seed_customer(self) -> Customer:
        self.stdout.write("Creating demo customer...")
        service = build_customer_service()
        existing = Customer.objects.alive().filter(email=DEMO_EMAIL).first()
        if existing is not None:
            return existing
        return service.register(
            RegisterCustomerDTO(
                email=DEMO_EMAIL,
                first_name="Demo",
                last_name="Shopper",
                password=DEMO_PASSWORD,
            )
        )

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        catalog = [
            ("TEE-001", "Organic Cotton Tee", Decimal("24.00")),
            ("TEE-002", "Heavyweight Pocket Tee", Decimal("32.00")),
            ("HOOD-001", "Fleece Hoodie", Decimal("68.00")),
            ("CAP-001", "Six Panel Cap", Decimal("28.00")),
            ("MUG-001", "Enamel Camp Mug", Decimal("18.50")),
            ("BAG-001", "Canvas Tote", Decimal("22.00")),
            ("SOCK-001", "Merino Crew Socks", Decimal("16.00")),
            ("BOTL-001", "Insulated Bottle", Decimal("35.00")),
        ]
        for sku, name, price in catalog:
            product, _ = Product.objects.get_or_create(
                sku=sku,
                defaults={
                    "name": name,
                    "price": price,
                    "currency": "USD",
                    "stock_quantity": random.randint(20, 200),
                    "status": ProductStatus.ACTIVE,
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(
        self, customer: Customer, products: list[Product], count: int
    ) -> int:
        self.stdout.write("Creating orders...")
        if not products:
            self.stdout.write(self.style.WARNING("Skipping orders (no products)."))
            return 0

        service = build_order_service()
        for i in range(count):
            lines = random.sample(products, k=min(random.randint(1, 3), len(products)))
            draft = OrderDraftDTO(
                items=[
                    {"product_id": product.id, "quantity": random.randint(1, 2)}
                    for product in lines
                ],
                shipping_amount="5.00",
                notes=f"Seed order {i + 1}",
            )
            if i % 2:
                service.create_guest_order(
                    draft,
                    GuestCustomerDTO(
                        email=f"guest{i}@example.com",
                        first_name="Guest",
                        last_name=f"Buyer {i}",
                    ),
                )
            else:
                service.create_user_order(customer, draft)

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return count
