import factory
from catalog.models import Product
from factory import Faker
from factory.django import DjangoModelFactory


class ProductFactory(DjangoModelFactory):
    class Meta:
        model = Product

    sku = factory.Faker("bothify", text="SKU-####-???")
    name = Faker("sentence", nb_words=3)
    variant = ""
    description = Faker("sentence")
    unit_of_measure = "PIECES"
    barcode = factory.Faker("ean")
    is_active = True
