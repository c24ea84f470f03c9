"""Gazetteer — IATA airport → country, country name → ISO 3166-1 alpha-2."""

import logging

logger = logging.getLogger(__name__)

DEFAULT_AIRPORT_COUNTRY = "US"
DEFAULT_COUNTRY_ISO = "us"

# Airport → country code (ISO 3166-1 alpha-2)
AIRPORT_COUNTRIES: dict[str, str] = {
    # India
    "MAA": "IN", "DEL": "IN", "BOM": "IN", "BLR": "IN", "HYD": "IN",
    "CCU": "IN", "COK": "IN", "GOI": "IN", "GOX": "IN", "AMD": "IN",
    "PNQ": "IN", "TRV": "IN", "CJB": "IN", "IXZ": "IN", "IXB": "IN",
    "IXC": "IN", "IXE": "IN", "IXM": "IN", "IXR": "IN", "IXL": "IN",
    "JAI": "IN", "LKO": "IN", "GAU": "IN", "PAT": "IN", "SXR": "IN",
    "VNS": "IN", "BBI": "IN", "NAG": "IN", "IDR": "IN", "ATQ": "IN",
    "TRZ": "IN", "VTZ": "IN", "UDR": "IN", "DED": "IN",
    # Canada
    "YYZ": "CA", "YVR": "CA", "YUL": "CA", "YOW": "CA", "YHZ": "CA",
    "YYC": "CA", "YEG": "CA", "YWG": "CA", "YHM": "CA", "YKF": "CA",
    # United States
    "JFK": "US", "LAX": "US", "ORD": "US", "ATL": "US", "DFW": "US",
    "SFO": "US", "SEA": "US", "MIA": "US", "BOS": "US", "DEN": "US",
    "IAH": "US", "EWR": "US", "LGA": "US", "MCO": "US", "PHL": "US",
    "IAD": "US", "DCA": "US", "CLT": "US", "MSP": "US", "DTW": "US",
    "BWI": "US", "SAN": "US", "TPA": "US", "PDX": "US", "SLC": "US",
    "BNA": "US", "AUS": "US", "RDU": "US", "SMF": "US", "HNL": "US",
    "LAS": "US", "PHX": "US", "OGG": "US", "ANC": "US",
    # Mexico & Caribbean
    "MEX": "MX", "CUN": "MX", "GDL": "MX", "SJD": "MX",
    "SJU": "PR", "MBJ": "JM", "PUJ": "DO", "NAS": "BS",
    # South America
    "GRU": "BR", "GIG": "BR", "EZE": "AR", "SCL": "CL", "LIM": "PE",
    "BOG": "CO", "UIO": "EC",
    # United Kingdom
    "LHR": "GB", "LGW": "GB", "STN": "GB", "MAN": "GB", "EDI": "GB",
    "BHX": "GB", "GLA": "GB", "LTN": "GB", "BFS": "GB",
    # France
    "CDG": "FR", "ORY": "FR", "NCE": "FR", "LYS": "FR", "MRS": "FR",
    # Germany
    "FRA": "DE", "MUC": "DE", "BER": "DE", "DUS": "DE", "HAM": "DE",
    # Netherlands
    "AMS": "NL",
    # Spain
    "MAD": "ES", "BCN": "ES", "AGP": "ES", "PMI": "ES",
    # Italy
    "FCO": "IT", "MXP": "IT", "VCE": "IT", "NAP": "IT", "FLR": "IT",
    # Ireland
    "DUB": "IE",
    # Portugal
    "LIS": "PT", "OPO": "PT",
    # Greece
    "ATH": "GR", "JTR": "GR", "JMK": "GR",
    # Austria
    "VIE": "AT",
    # Belgium
    "BRU": "BE",
    # Czech Republic
    "PRG": "CZ",
    # Hungary
    "BUD": "HU",
    # Poland
    "WAW": "PL", "KRK": "PL",
    # Finland
    "HEL": "FI",
    # Denmark
    "CPH": "DK",
    # Norway
    "OSL": "NO",
    # Sweden
    "ARN": "SE",
    # Switzerland
    "ZRH": "CH", "GVA": "CH",
    # Iceland
    "KEF": "IS",
    # Turkey
    "IST": "TR", "SAW": "TR", "AYT": "TR",
    # UAE
    "DXB": "AE", "AUH": "AE",
    # Qatar
    "DOH": "QA",
    # Saudi Arabia
    "RUH": "SA", "JED": "SA",
    # Oman
    "MCT": "OM",
    # Egypt
    "CAI": "EG",
    # Morocco
    "RAK": "MA", "CMN": "MA",
    # Kenya
    "NBO": "KE",
    # South Africa
    "JNB": "ZA", "CPT": "ZA",
    # Japan
    "NRT": "JP", "HND": "JP", "KIX": "JP",
    # South Korea
    "ICN": "KR",
    # China
    "PEK": "CN", "PVG": "CN", "CAN": "CN",
    # Hong Kong
    "HKG": "HK",
    # Taiwan
    "TPE": "TW",
    # Singapore
    "SIN": "SG",
    # Malaysia
    "KUL": "MY",
    # Thailand
    "BKK": "TH", "DMK": "TH", "HKT": "TH", "CNX": "TH",
    # Vietnam
    "SGN": "VN", "HAN": "VN", "DAD": "VN",
    # Indonesia
    "CGK": "ID", "DPS": "ID",
    # Philippines
    "MNL": "PH", "CEB": "PH",
    # Sri Lanka
    "CMB": "LK",
    # Nepal
    "KTM": "NP",
    # Maldives
    "MLE": "MV",
    # Bangladesh
    "DAC": "BD",
    # Australia
    "SYD": "AU", "MEL": "AU", "BNE": "AU", "PER": "AU",
    # New Zealand
    "AKL": "NZ", "CHC": "NZ", "ZQN": "NZ",
}

# Country name → ISO code (lower-case, as the booking flow expects)
COUNTRY_ISO_CODES: dict[str, str] = {
    "Afghanistan": "af",
    "Albania": "al",
    "Algeria": "dz",
    "American Samoa": "as",
    "Andorra": "ad",
    "Angola": "ao",
    "Anguilla": "ai",
    "Antigua & Barbuda": "ag",
    "Argentina": "ar",
    "Armenia": "am",
    "Aruba": "aw",
    "Australia": "au",
    "Austria": "at",
    "Azerbaijan": "az",
    "Bahamas": "bs",
    "Bahrain": "bh",
    "Bangladesh": "bd",
    "Barbados": "bb",
    "Belarus": "by",
    "Belgium": "be",
    "Belize": "bz",
    "Benin": "bj",
    "Bermuda": "bm",
    "Bhutan": "bt",
    "Bolivia": "bo",
    "Bonaire St. Eustatius and Saba": "bq",
    "Bosnia and Herzegovina": "ba",
    "Botswana": "bw",
    "Brazil": "br",
    "British Indian Ocean Territory": "io",
    "British Virgin Islands": "vg",
    "Brunei": "bn",
    "Bulgaria": "bg",
    "Burkina Faso": "bf",
    "Burundi": "bi",
    "Cambodia": "kh",
    "Cameroon": "cm",
    "Canada": "ca",
    "Cape Verde": "cv",
    "Cayman Islands": "ky",
    "Central Africa Republic": "cf",
    "Chad": "td",
    "Chile": "cl",
    "China": "cn",
    "Christmas Island": "cx",
    "Cocos (K) I.": "cc",
    "Colombia": "co",
    "Comoros": "km",
    "Congo": "cg",
    "Cook Islands": "ck",
    "Costa Rica": "cr",
    "Croatia": "hr",
    "Cuba": "cu",
    "Curaçao": "cw",
    "Cyprus": "cy",
    "Czech Republic": "cz",
    "Democratic Republic of the Congo": "cd",
    "Denmark": "dk",
    "Djibouti": "dj",
    "Dominica": "dm",
    "Dominican Republic": "do",
    "East Timor": "tl",
    "Ecuador": "ec",
    "Egypt": "eg",
    "El Salvador": "sv",
    "Equatorial Guinea": "gq",
    "Eritrea": "er",
    "Estonia": "ee",
    "Eswatini": "sz",
    "Ethiopia": "et",
    "Falkland Islands (Malvinas)": "fk",
    "Faroe Islands": "fo",
    "Fiji": "fj",
    "Finland": "fi",
    "France": "fr",
    "French Guiana": "gf",
    "French Polynesia": "pf",
    "Gabon": "ga",
    "Gambia": "gm",
    "Georgia": "ge",
    "Germany": "de",
    "Ghana": "gh",
    "Gibraltar": "gi",
    "Greece": "gr",
    "Greenland": "gl",
    "Grenada": "gd",
    "Guadeloupe": "gp",
    "Guam": "gu",
    "Guatemala": "gt",
    "Guernsey": "gg",
    "Guinea": "gn",
    "Guinea-Bissau": "gw",
    "Guyana": "gy",
    "Haiti": "ht",
    "Honduras": "hn",
    "Hong Kong": "hk",
    "Hungary": "hu",
    "Iceland": "is",
    "India": "in",
    "Indonesia": "id",
    "Iran": "ir",
    "Iraq": "iq",
    "Ireland": "ie",
    "Isle of Man": "im",
    "Israel": "il",
    "Italy": "it",
    "Ivory Coast": "ci",
    "Jamaica": "jm",
    "Japan": "jp",
    "Jersey": "je",
    "Jordan": "jo",
    "Kazakhstan": "kz",
    "Kenya": "ke",
    "Kiribati": "ki",
    "Kosovo": "xk",
    "Kuwait": "kw",
    "Kyrgyzstan": "kg",
    "Laos": "la",
    "Latvia": "lv",
    "Lebanon": "lb",
    "Lesotho": "ls",
    "Liberia": "lr",
    "Libya": "ly",
    "Liechtenstein": "li",
    "Lithuania": "lt",
    "Luxembourg": "lu",
    "Macau": "mo",
    "Madagascar": "mg",
    "Malawi": "mw",
    "Malaysia": "my",
    "Maldives": "mv",
    "Mali": "ml",
    "Malta": "mt",
    "Marshall Islands": "mh",
    "Martinique": "mq",
    "Mauritania": "mr",
    "Mauritius": "mu",
    "Mayotte": "yt",
    "Mexico": "mx",
    "Micronesia": "fm",
    "Moldova": "md",
    "Monaco": "mc",
    "Mongolia": "mn",
    "Montenegro": "me",
    "Montserrat": "ms",
    "Morocco": "ma",
    "Mozambique": "mz",
    "Myanmar": "mm",
    "Namibia": "na",
    "Nauru": "nr",
    "Nepal": "np",
    "Netherlands": "nl",
    "New Caledonia": "nc",
    "New Zealand": "nz",
    "Nicaragua": "ni",
    "Niger": "ne",
    "Nigeria": "ng",
    "Niue": "nu",
    "Norfolk Island": "nf",
    "North Korea": "kp",
    "North Macedonia": "mk",
    "Northern Mariana Islands": "mp",
    "Norway": "no",
    "Oman": "om",
    "Pakistan": "pk",
    "Palau": "pw",
    "Palestinian Territory": "ps",
    "Panama": "pa",
    "Papua New Guinea": "pg",
    "Paraguay": "py",
    "Peru": "pe",
    "Philippines": "ph",
    "Poland": "pl",
    "Portugal": "pt",
    "Puerto Rico": "pr",
    "Qatar": "qa",
    "Reunion": "re",
    "Romania": "ro",
    "Russia": "ru",
    "Rwanda": "rw",
    "Saint Barts": "bl",
    "Saint Kitts and Nevis": "kn",
    "Saint Lucia": "lc",
    "Saint Martin": "mf",
    "Saint Vincent & Grenadines": "vc",
    "Samoa": "ws",
    "San Marino": "sm",
    "São Tomé and Príncipe": "st",
    "Saudi Arabia": "sa",
    "Senegal": "sn",
    "Serbia": "rs",
    "Seychelles": "sc",
    "Sierra Leone": "sl",
    "Singapore": "sg",
    "Slovakia": "sk",
    "Slovenia": "si",
    "Solomon Islands": "sb",
    "Somalia": "so",
    "South Africa": "za",
    "South Korea": "kr",
    "South Sudan": "ss",
    "Spain": "es",
    "Sri Lanka": "lk",
    "St. Helena": "sh",
    "St. Maarten": "sx",
    "St. Pierre and Miquelon": "pm",
    "Sudan": "sd",
    "Suriname": "sr",
    "Svalbard & Jan Mayen": "sj",
    "Sweden": "se",
    "Switzerland": "ch",
    "Syria": "sy",
    "Taiwan": "tw",
    "Tajikistan": "tj",
    "Tanzania": "tz",
    "Thailand": "th",
    "Togo": "tg",
    "Tokelau": "tk",
    "Tonga": "to",
    "Trinidad and Tobago": "tt",
    "Tunisia": "tn",
    "Turkey": "tr",
    "Turkmenistan": "tm",
    "Turks & Caicos Islands": "tc",
    "Tuvalu": "tv",
    "U.S. Virgin Islands": "vi",
    "Uganda": "ug",
    "Ukraine": "ua",
    "United Arab Emirates": "ae",
    "United Kingdom": "gb",
    "United States": "us",
    "Uruguay": "uy",
    "Uzbekistan": "uz",
    "Vanuatu": "vu",
    "Vatican City": "va",
    "Venezuela": "ve",
    "Vietnam": "vn",
    "Wallis and Futuna": "wf",
    "Western Sahara": "eh",
    "Yemen": "ye",
    "Zambia": "zm",
    "Zimbabwe": "zw",
}


def resolve_country(iata_code: str | None) -> str:
    """Country for an airport. Unknown airports default to US."""
    if not iata_code:
        return DEFAULT_AIRPORT_COUNTRY
    return AIRPORT_COUNTRIES.get(iata_code.strip().upper(), DEFAULT_AIRPORT_COUNTRY)


def resolve_iso(country_name: str | None) -> str:
    """ISO code for a country name. Exact, case-sensitive match; defaults to "us"."""
    if country_name and country_name in COUNTRY_ISO_CODES:
        return COUNTRY_ISO_CODES[country_name]
    logger.warning(f"No ISO code for country name {country_name!r}, using {DEFAULT_COUNTRY_ISO!r}")
    return DEFAULT_COUNTRY_ISO
