"""Address lookup."""
from foodswipe.services.geocoding.autocomplete import AddressAutocomplete, AddressSuggestion

__all__ = ["AddressAutocomplete", "AddressSuggestion"]
