"""Pydantic schemas for the property listings API."""

from property_api.schemas.base import *
from property_api.schemas.property import *
