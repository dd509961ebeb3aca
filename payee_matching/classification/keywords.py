"""Static keyword tables used by keyword exclusion.

Every list is uppercase, sorted and duplicate free.
"""

from typing import Dict, List

LEGAL_SUFFIXES: List[str] = [
    "AG",
    "CO",
    "CORP",
    "CORPORATION",
    "GMBH",
    "INC",
    "INCORPORATED",
    "LIMITED",
    "LLC",
    "LLLP",
    "LLP",
    "LP",
    "LTD",
    "NA",
    "PA",
    "PC",
    "PLC",
    "PLLC",
    "SA",
]

BUSINESS_KEYWORDS: List[str] = [
    "AGENCY",
    "ASSOCIATES",
    "ASSOCIATION",
    "BANK",
    "BROTHERS",
    "CENTER",
    "CENTRE",
    "COMPANY",
    "CONSULTING",
    "CONTRACTORS",
    "COOPERATIVE",
    "CREDIT UNION",
    "DISTRIBUTORS",
    "ENTERPRISE",
    "ENTERPRISES",
    "FOUNDATION",
    "GROUP",
    "HOLDINGS",
    "INDUSTRIES",
    "INSTITUTE",
    "INTERNATIONAL",
    "PARTNERS",
    "PARTNERSHIP",
    "SERVICES",
    "SOLUTIONS",
    "SUPPLY",
    "SYSTEMS",
    "TECHNOLOGIES",
    "TRUST",
    "UNIVERSITY",
    "VENTURES",
]

GOVERNMENT_PATTERNS: List[str] = [
    "BOARD OF",
    "BUREAU OF",
    "CITY OF",
    "COMMONWEALTH OF",
    "COUNTY OF",
    "DEPARTMENT OF",
    "DEPT OF",
    "DISTRICT COURT",
    "INTERNAL REVENUE SERVICE",
    "OFFICE OF",
    "SCHOOL DISTRICT",
    "STATE OF",
    "TOWN OF",
    "TOWNSHIP OF",
    "TREASURER",
    "UNITED STATES",
    "US TREASURY",
    "VILLAGE OF",
]

PROFESSIONAL_TITLES: List[str] = [
    "ATTORNEYS",
    "CPA",
    "CPAS",
    "DDS",
    "DMD",
    "DVM",
    "ESQ",
    "LAW FIRM",
    "LAW OFFICE",
    "LAW OFFICES",
    "MEDICAL GROUP",
]

INDUSTRY_IDENTIFIERS: Dict[str, List[str]] = {
    "automotive": [
        "AUTO",
        "AUTOMOTIVE",
        "GARAGE",
        "MOTORS",
        "TIRE",
    ],
    "construction": [
        "BUILDERS",
        "CONSTRUCTION",
        "PLUMBING",
        "ROOFING",
    ],
    "finance": [
        "CAPITAL",
        "FINANCIAL",
        "INSURANCE",
        "INVESTMENTS",
        "LENDING",
    ],
    "food": [
        "BAKERY",
        "CAFE",
        "CATERING",
        "GRILL",
        "PIZZA",
        "RESTAURANT",
    ],
    "healthcare": [
        "CLINIC",
        "DENTAL",
        "HEALTHCARE",
        "HOSPITAL",
        "PHARMACY",
    ],
    "hospitality": [
        "HOTEL",
        "INN",
        "MOTEL",
        "RESORT",
    ],
    "retail": [
        "MARKET",
        "OUTLET",
        "STORE",
        "SUPERMARKET",
    ],
    "technology": [
        "NETWORKS",
        "SOFTWARE",
        "TECH",
        "TELECOM",
    ],
    "utilities": [
        "ELECTRIC",
        "ENERGY",
        "GAS",
        "UTILITIES",
        "WATER",
    ],
}
