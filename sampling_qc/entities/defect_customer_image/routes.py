"""Customer defect image routes mounted at ``/api/defect-customer-image``."""
from __future__ import annotations

from flask import Blueprint

from ..defect_image.routes import image_blueprint
from ..defect_image.service import DefectImageService
from ..defectdata_customer.models import DefectDataCustomer
from .models import DefectCustomerImage


class CustomerImageService(DefectImageService):
    model = DefectCustomerImage
    owner = DefectDataCustomer
    owner_label = "Customer defect record"
    label = "Customer defect image"


def create_blueprint(db) -> Blueprint:
    return image_blueprint("defect_customer_image", CustomerImageService(db))
