from __future__ import annotations

from typing import Dict, Tuple

# Full state names; two-letter postal codes are derived below and only match
# upper-case in the raw title.
US_STATES: Dict[str, str] = {
    "alabama": "US-AL",
    "alaska": "US-AK",
    "arizona": "US-AZ",
    "arkansas": "US-AR",
    "california": "US-CA",
    "colorado": "US-CO",
    "connecticut": "US-CT",
    "delaware": "US-DE",
    "florida": "US-FL",
    "georgia": "US-GA",
    "hawaii": "US-HI",
    "idaho": "US-ID",
    "illinois": "US-IL",
    "indiana": "US-IN",
    "iowa": "US-IA",
    "kansas": "US-KS",
    "kentucky": "US-KY",
    "louisiana": "US-LA",
    "maine": "US-ME",
    "maryland": "US-MD",
    "massachusetts": "US-MA",
    "michigan": "US-MI",
    "minnesota": "US-MN",
    "mississippi": "US-MS",
    "missouri": "US-MO",
    "montana": "US-MT",
    "nebraska": "US-NE",
    "nevada": "US-NV",
    "new hampshire": "US-NH",
    "new jersey": "US-NJ",
    "new mexico": "US-NM",
    "new york": "US-NY",
    "north carolina": "US-NC",
    "north dakota": "US-ND",
    "ohio": "US-OH",
    "oklahoma": "US-OK",
    "oregon": "US-OR",
    "pennsylvania": "US-PA",
    "rhode island": "US-RI",
    "south carolina": "US-SC",
    "south dakota": "US-SD",
    "tennessee": "US-TN",
    "texas": "US-TX",
    "utah": "US-UT",
    "vermont": "US-VT",
    "west virginia": "US-WV",
    "virginia": "US-VA",
    "washington": "US-WA",
    "wisconsin": "US-WI",
    "wyoming": "US-WY",
    "district of columbia": "US-DC",
    "puerto rico": "US-PR",
}

STATE_CODES: Dict[str, str] = {code.split("-")[1]: code for code in US_STATES.values()}

# Cities are checked before states so "new york city" beats "new york".
US_CITIES: Dict[str, str] = {
    "new york city": "US-NY",
    "nyc": "US-NY",
    "manhattan": "US-NY",
    "los angeles": "US-CA",
    "chicago": "US-IL",
    "houston": "US-TX",
    "phoenix": "US-AZ",
    "philadelphia": "US-PA",
    "philly": "US-PA",
    "san antonio": "US-TX",
    "san diego": "US-CA",
    "dallas": "US-TX",
    "san jose": "US-CA",
    "austin": "US-TX",
    "jacksonville": "US-FL",
    "fort worth": "US-TX",
    "columbus": "US-OH",
    "charlotte": "US-NC",
    "san francisco": "US-CA",
    "indianapolis": "US-IN",
    "seattle": "US-WA",
    "denver": "US-CO",
    "boston": "US-MA",
    "el paso": "US-TX",
    "detroit": "US-MI",
    "nashville": "US-TN",
    "portland": "US-OR",
    "memphis": "US-TN",
    "oklahoma city": "US-OK",
    "las vegas": "US-NV",
    "louisville": "US-KY",
    "baltimore": "US-MD",
    "milwaukee": "US-WI",
    "albuquerque": "US-NM",
    "tucson": "US-AZ",
    "sacramento": "US-CA",
    "atlanta": "US-GA",
    "miami": "US-FL",
    "orlando": "US-FL",
    "tampa": "US-FL",
    "new orleans": "US-LA",
    "wilmington": "US-NC",
    "anchorage": "US-AK",
    "honolulu": "US-HI",
}

COUNTRIES: Dict[str, str] = {
    "united states": "US",
    "usa": "US",
    "america": "US",
    "united kingdom": "UK",
    "uk": "UK",
    "britain": "UK",
    "england": "UK",
    "canada": "CA",
    "mexico": "MX",
    "japan": "JP",
    "china": "CN",
    "india": "IN",
    "australia": "AU",
    "germany": "DE",
    "france": "FR",
    "italy": "IT",
    "spain": "ES",
    "brazil": "BR",
    "russia": "RU",
    "indonesia": "ID",
    "philippines": "PH",
    "caribbean": "CARIBBEAN",
    "atlantic": "ATLANTIC",
    "pacific": "PACIFIC",
    "gulf": "GULF",
    "arctic": "ARCTIC",
    "global": "GLOBAL",
    "worldwide": "GLOBAL",
}

# Election countries, resolved by keyword in this order.
ELECTION_COUNTRIES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("US", ("united states", "america", "usa", "u.s.", "american", "federal", "congress", "senate", "white house")),
    ("UK", ("united kingdom", "britain", "british", "uk", "u.k.", "england", "parliament", "westminster", "downing street")),
    ("FRANCE", ("france", "french", "elysee", "macron", "le pen")),
    ("GERMANY", ("germany", "german", "bundestag", "chancellor")),
    ("CANADA", ("canada", "canadian", "trudeau", "ottawa")),
    ("AUSTRALIA", ("australia", "australian", "canberra")),
    ("MALAYSIA", ("malaysia", "malaysian", "kuala lumpur")),
    ("LATVIA", ("latvia", "latvian", "riga")),
    ("LEBANON", ("lebanon", "lebanese", "beirut", "hezbollah")),
    ("MEXICO", ("mexico", "mexican")),
    ("BRAZIL", ("brazil", "brazilian", "bolsonaro", "lula")),
    ("INDIA", ("india", "indian", "modi", "lok sabha")),
    ("JAPAN", ("japan", "japanese", "diet")),
    ("SOUTH_KOREA", ("south korea", "korean", "seoul")),
    ("PHILIPPINES", ("philippines", "filipino", "duterte", "marcos")),
)

# Offices that only exist in US races when no country is named.
US_ELECTION_TERMS: Tuple[str, ...] = (
    "president",
    "presidency",
    "congress",
    "congressional",
    "senate",
    "governor",
    "electoral",
)
