"""
Expense category catalog.

The catalog is fixed for the lifetime of the process: it is built once at
import time and exposed through a read-only registry.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    subcategories: Tuple[str, ...]

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "name": self.name, "subcategories": list(self.subcategories)}


_CATALOG: Tuple[Category, ...] = (
    # Basic necessities
    Category("food", "Food & Dining", ("Groceries", "Restaurants", "Takeout", "Coffee Shops", "Fast Food", "Snacks")),
    Category(
        "housing",
        "Housing",
        ("Rent", "Mortgage", "Property Tax", "Home Insurance", "Maintenance", "Utilities", "Furniture", "Home Decor"),
    ),
    Category(
        "transport",
        "Transportation",
        ("Car Payment", "Car Insurance", "Gas", "Public Transit", "Ride Sharing", "Parking", "Maintenance", "Tolls"),
    ),
    # Personal care
    Category(
        "health",
        "Health & Medical",
        ("Doctor Visits", "Dentist", "Pharmacy", "Health Insurance", "Fitness", "Supplements", "Medical Devices"),
    ),
    Category(
        "personal_care",
        "Personal Care",
        ("Haircuts", "Cosmetics", "Toiletries", "Spa", "Beauty Products", "Personal Hygiene"),
    ),
    # Lifestyle
    Category("shopping", "Shopping", ("Clothing", "Electronics", "Books", "Gifts", "Home Goods", "Accessories")),
    Category(
        "entertainment",
        "Entertainment",
        ("Movies", "Streaming Services", "Concerts", "Events", "Games", "Hobbies", "Subscriptions"),
    ),
    # Financial
    Category("financial", "Financial", ("Investments", "Savings", "Loans", "Credit Cards", "Bank Fees", "Taxes")),
    Category(
        "insurance",
        "Insurance",
        ("Life Insurance", "Health Insurance", "Car Insurance", "Home Insurance", "Travel Insurance"),
    ),
    # Education & work
    Category("education", "Education", ("Tuition", "Books", "Courses", "Software", "Equipment", "Certifications")),
    Category(
        "work",
        "Work Expenses",
        ("Office Supplies", "Professional Development", "Business Travel", "Work Equipment", "Business Meals"),
    ),
    # Travel & leisure
    Category("travel", "Travel", ("Flights", "Hotels", "Vacation", "Travel Insurance", "Souvenirs", "Local Transport")),
    Category("leisure", "Leisure", ("Sports", "Fitness", "Outdoor Activities", "Memberships", "Equipment")),
    # Technology
    Category("technology", "Technology", ("Devices", "Software", "Apps", "Internet", "Phone Bill", "Tech Accessories")),
    # Miscellaneous
    Category("charity", "Charity & Donations", ("Donations", "Charity Events", "Fundraising", "Volunteer Expenses")),
    Category("pets", "Pets", ("Food", "Vet", "Grooming", "Toys", "Pet Insurance", "Supplies")),
    Category("other", "Other", ("Miscellaneous", "Uncategorized")),
)


class CategoryRegistry:
    """Read-only lookup over a fixed category catalog."""

    def __init__(self, categories: Tuple[Category, ...]) -> None:
        self._categories: Mapping[str, Category] = MappingProxyType({c.id: c for c in categories})

    def __contains__(self, category_id: object) -> bool:
        return category_id in self._categories

    def __len__(self) -> int:
        return len(self._categories)

    @property
    def ids(self) -> List[str]:
        return list(self._categories)

    def list_categories(self) -> List[Category]:
        return list(self._categories.values())

    def get(self, category_id: str) -> Optional[Category]:
        return self._categories.get(category_id)

    def is_valid(self, category_id: Optional[str]) -> bool:
        return category_id in self._categories

    def is_valid_subcategory(self, category_id: str, subcategory: str) -> bool:
        category = self.get(category_id)
        return category is not None and subcategory in category.subcategories

    def display_name(self, category_id: str) -> str:
        category = self.get(category_id)
        return category.name if category else category_id


CATEGORY_REGISTRY = CategoryRegistry(_CATALOG)
