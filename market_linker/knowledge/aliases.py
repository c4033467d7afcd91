from __future__ import annotations

from typing import Dict, Tuple

# Canonical team name -> aliases. Order matters: when an alias is shared
# ("boston", "giants"), the first canonical listed wins.
TEAM_ALIASES: Dict[str, Tuple[str, ...]] = {
    # NBA
    "los angeles lakers": ("la lakers", "lakers", "lake show"),
    "los angeles clippers": ("la clippers", "clippers", "clips"),
    "golden state warriors": ("warriors", "gsw", "dubs"),
    "boston celtics": ("celtics", "boston"),
    "new york knicks": ("knicks", "ny knicks", "nyc knicks"),
    "brooklyn nets": ("nets", "bkn"),
    "chicago bulls": ("bulls", "chicago"),
    "miami heat": ("heat", "miami"),
    "milwaukee bucks": ("bucks", "milwaukee"),
    "phoenix suns": ("suns", "phoenix"),
    "dallas mavericks": ("mavs", "mavericks", "dallas"),
    "denver nuggets": ("nuggets", "denver"),
    "philadelphia 76ers": ("sixers", "76ers", "philly"),
    "memphis grizzlies": ("grizzlies", "grizz", "memphis"),
    "cleveland cavaliers": ("cavs", "cavaliers", "cleveland"),
    "toronto raptors": ("raptors", "toronto"),
    "indiana pacers": ("pacers", "indiana"),
    "atlanta hawks": ("hawks", "atlanta"),
    "orlando magic": ("magic", "orlando"),
    "washington wizards": ("wizards", "washington", "wiz"),
    "detroit pistons": ("pistons", "detroit"),
    "charlotte hornets": ("hornets", "charlotte"),
    "portland trail blazers": ("blazers", "trail blazers", "portland"),
    "utah jazz": ("jazz", "utah"),
    "new orleans pelicans": ("pelicans", "new orleans", "nola", "pels"),
    "minnesota timberwolves": ("timberwolves", "wolves", "minnesota", "twolves"),
    "oklahoma city thunder": ("thunder", "okc", "oklahoma city"),
    "sacramento kings": ("kings", "sacramento"),
    "san antonio spurs": ("spurs", "san antonio"),
    "houston rockets": ("rockets", "houston"),
    # NFL
    "kansas city chiefs": ("chiefs", "kansas city", "kc"),
    "philadelphia eagles": ("eagles", "philly"),
    "buffalo bills": ("bills", "buffalo"),
    "dallas cowboys": ("cowboys", "dallas", "americas team"),
    "miami dolphins": ("dolphins", "miami"),
    "baltimore ravens": ("ravens", "baltimore"),
    "cincinnati bengals": ("bengals", "cincinnati", "cincy"),
    "los angeles chargers": ("chargers", "la chargers", "bolts"),
    "detroit lions": ("lions", "detroit"),
    "san francisco 49ers": ("49ers", "niners", "san francisco", "sf"),
    "jacksonville jaguars": ("jaguars", "jags", "jacksonville"),
    "minnesota vikings": ("vikings", "minnesota"),
    "new york jets": ("jets", "ny jets"),
    "new york giants": ("giants", "ny giants", "big blue"),
    "new england patriots": ("patriots", "pats", "new england"),
    "seattle seahawks": ("seahawks", "seattle"),
    "denver broncos": ("broncos", "denver"),
    "green bay packers": ("packers", "green bay", "gb"),
    "las vegas raiders": ("raiders", "las vegas", "lv raiders", "oakland raiders"),
    "pittsburgh steelers": ("steelers", "pittsburgh"),
    "cleveland browns": ("browns", "cleveland"),
    "tennessee titans": ("titans", "tennessee"),
    "indianapolis colts": ("colts", "indianapolis", "indy"),
    "houston texans": ("texans", "houston"),
    "arizona cardinals": ("cardinals", "arizona", "az cardinals"),
    "atlanta falcons": ("falcons", "atlanta"),
    "carolina panthers": ("panthers", "carolina"),
    "new orleans saints": ("saints", "new orleans", "nola"),
    "tampa bay buccaneers": ("buccaneers", "bucs", "tampa bay", "tb"),
    "washington commanders": ("commanders", "washington", "dc"),
    "chicago bears": ("bears", "chicago"),
    "los angeles rams": ("rams", "la rams"),
    # EPL
    "manchester united": ("man united", "man utd", "mufc", "red devils", "united"),
    "manchester city": ("man city", "mcfc", "city", "citizens"),
    "liverpool": ("liverpool fc", "lfc", "reds"),
    "chelsea": ("chelsea fc", "cfc", "blues"),
    "arsenal": ("arsenal fc", "afc", "gunners"),
    "tottenham hotspur": ("tottenham", "spurs", "thfc"),
    "west ham united": ("west ham", "hammers", "whu"),
    "newcastle united": ("newcastle", "magpies", "nufc"),
    "aston villa": ("villa", "avfc"),
    "brighton": ("brighton & hove albion", "seagulls", "bhafc"),
    "wolverhampton wanderers": ("wolves", "wolverhampton"),
    "crystal palace": ("palace", "cpfc"),
    "nottingham forest": ("forest", "nffc"),
    "everton": ("everton fc", "efc", "toffees"),
    "leicester city": ("leicester", "foxes", "lcfc"),
    # La Liga
    "real madrid": ("madrid", "rmcf", "los blancos"),
    "barcelona": ("barca", "fcb", "blaugrana"),
    "atletico madrid": ("atletico", "atleti"),
    # Bundesliga
    "bayern munich": ("bayern", "fcb", "bavarians"),
    "borussia dortmund": ("dortmund", "bvb"),
    "rb leipzig": ("leipzig", "rbl"),
    "bayer leverkusen": ("leverkusen",),
    # Serie A
    "inter milan": ("inter", "internazionale"),
    "ac milan": ("milan", "rossoneri"),
    "juventus": ("juve",),
    # MLB
    "new york yankees": ("yankees", "ny yankees", "bronx bombers"),
    "los angeles dodgers": ("dodgers", "la dodgers"),
    "boston red sox": ("red sox", "boston", "sox"),
    "chicago cubs": ("cubs", "chicago cubs"),
    "new york mets": ("mets", "ny mets"),
    "atlanta braves": ("braves", "atlanta"),
    "houston astros": ("astros", "houston", "stros"),
    "philadelphia phillies": ("phillies", "philly"),
    "san diego padres": ("padres", "san diego"),
    "seattle mariners": ("mariners", "seattle", "ms"),
    "tampa bay rays": ("rays", "tampa bay"),
    "cleveland guardians": ("guardians", "cleveland", "tribe"),
    "minnesota twins": ("twins", "minnesota"),
    "toronto blue jays": ("blue jays", "jays", "toronto"),
    "baltimore orioles": ("orioles", "baltimore", "os"),
    "detroit tigers": ("tigers", "detroit"),
    "kansas city royals": ("royals", "kansas city", "kc"),
    "chicago white sox": ("white sox", "chi sox", "south siders"),
    "los angeles angels": ("angels", "la angels", "anaheim angels"),
    "texas rangers": ("rangers", "texas"),
    "oakland athletics": ("athletics", "as", "oakland"),
    "cincinnati reds": ("reds", "cincinnati"),
    "milwaukee brewers": ("brewers", "milwaukee", "brew crew"),
    "pittsburgh pirates": ("pirates", "pittsburgh", "bucs"),
    "st louis cardinals": ("cardinals", "st louis", "cards"),
    "washington nationals": ("nationals", "washington", "nats"),
    "miami marlins": ("marlins", "miami"),
    "colorado rockies": ("rockies", "colorado"),
    "arizona diamondbacks": ("diamondbacks", "dbacks", "arizona"),
    "san francisco giants": ("giants", "san francisco", "sf giants"),
    # NHL
    "new york rangers": ("rangers", "ny rangers", "nyr", "blueshirts"),
    "boston bruins": ("bruins", "boston", "bs"),
    "toronto maple leafs": ("maple leafs", "leafs", "toronto"),
    "montreal canadiens": ("canadiens", "habs", "montreal"),
    "edmonton oilers": ("oilers", "edmonton"),
    "calgary flames": ("flames", "calgary"),
    "vancouver canucks": ("canucks", "vancouver"),
    "colorado avalanche": ("avalanche", "avs", "colorado"),
    "minnesota wild": ("wild", "minnesota"),
    "dallas stars": ("stars", "dallas"),
    "nashville predators": ("predators", "preds", "nashville"),
    "st louis blues": ("blues", "st louis", "stl"),
    "chicago blackhawks": ("blackhawks", "hawks", "chicago"),
    "detroit red wings": ("red wings", "wings", "detroit"),
    "pittsburgh penguins": ("penguins", "pens", "pittsburgh"),
    "washington capitals": ("capitals", "caps", "washington"),
    "carolina hurricanes": ("hurricanes", "canes", "carolina"),
    "tampa bay lightning": ("lightning", "bolts", "tampa bay"),
    "florida panthers": ("panthers", "florida", "cats"),
    "new york islanders": ("islanders", "isles", "ny islanders"),
    "new jersey devils": ("devils", "new jersey", "nj"),
    "philadelphia flyers": ("flyers", "philadelphia", "philly"),
    "buffalo sabres": ("sabres", "buffalo"),
    "ottawa senators": ("senators", "sens", "ottawa"),
    "winnipeg jets": ("jets", "winnipeg"),
    "seattle kraken": ("kraken", "seattle"),
    "vegas golden knights": ("golden knights", "knights", "vegas", "vgk"),
    "anaheim ducks": ("ducks", "anaheim"),
    "san jose sharks": ("sharks", "san jose", "sj"),
    "los angeles kings": ("kings", "la kings"),
}

# Leading city/region abbreviation -> full name, tried in order.
CITY_ABBREVIATIONS: Tuple[Tuple[str, str], ...] = (
    ("la", "los angeles"),
    ("ny", "new york"),
    ("sf", "san francisco"),
    ("kc", "kansas city"),
    ("dc", "washington"),
    ("nola", "new orleans"),
    ("okc", "oklahoma city"),
    ("philly", "philadelphia"),
    ("chi", "chicago"),
    ("det", "detroit"),
    ("bos", "boston"),
    ("mia", "miami"),
    ("atl", "atlanta"),
    ("hou", "houston"),
    ("dal", "dallas"),
    ("min", "minnesota"),
    ("den", "denver"),
    ("phx", "phoenix"),
    ("sea", "seattle"),
    ("por", "portland"),
    ("sac", "sacramento"),
    ("tb", "tampa bay"),
    ("lv", "las vegas"),
    ("gb", "green bay"),
    ("ind", "indianapolis"),
    ("cle", "cleveland"),
    ("cin", "cincinnati"),
    ("pit", "pittsburgh"),
    ("bal", "baltimore"),
    ("buf", "buffalo"),
    ("jax", "jacksonville"),
    ("ten", "tennessee"),
    ("car", "carolina"),
    ("az", "arizona"),
    ("no", "new orleans"),
)

LEAGUE_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "NBA": (
        "nba", "basketball", "lakers", "celtics", "knicks", "warriors", "nets", "bulls", "heat", "bucks",
        "suns", "mavs", "mavericks", "nuggets", "clippers", "grizzlies", "cavaliers", "cavs", "raptors",
        "sixers", "76ers", "pacers", "hawks", "magic", "wizards", "pistons", "hornets", "blazers",
        "trail blazers", "jazz", "pelicans", "timberwolves", "wolves", "thunder", "kings", "spurs",
    ),
    "NFL": (
        "nfl", "football", "chiefs", "eagles", "bills", "cowboys", "dolphins", "ravens", "bengals",
        "chargers", "lions", "niners", "49ers", "jaguars", "jags", "vikings", "jets", "giants", "patriots",
        "pats", "seahawks", "broncos", "packers", "raiders", "steelers", "browns", "titans", "colts",
        "texans", "cardinals", "falcons", "panthers", "saints", "buccaneers", "bucs", "commanders",
        "bears", "rams",
    ),
    "MLB": (
        "mlb", "baseball", "yankees", "dodgers", "red sox", "cubs", "mets", "braves", "astros", "phillies",
        "padres", "mariners", "rays", "guardians", "twins", "blue jays", "orioles", "tigers", "royals",
        "white sox", "angels", "rangers", "athletics", "reds", "brewers", "pirates", "cardinals",
        "nationals", "marlins", "rockies", "diamondbacks", "dbacks", "giants",
    ),
    "NHL": (
        "nhl", "hockey", "rangers", "bruins", "maple leafs", "leafs", "canadiens", "habs", "oilers",
        "flames", "canucks", "kraken", "avalanche", "avs", "wild", "stars", "predators", "preds", "blues",
        "blackhawks", "hawks", "red wings", "penguins", "pens", "capitals", "caps", "hurricanes", "canes",
        "lightning", "bolts", "panthers", "islanders", "isles", "devils", "flyers", "sabres", "senators",
        "sens", "jets", "coyotes", "golden knights", "knights", "ducks", "sharks", "kings",
    ),
    "EPL": (
        "premier league", "epl", "english premier", "arsenal", "gunners", "chelsea", "blues", "liverpool",
        "reds", "manchester united", "man united", "man utd", "manchester city", "man city", "tottenham",
        "spurs", "west ham", "hammers", "newcastle", "magpies", "aston villa", "villa", "brighton",
        "seagulls", "brentford", "bees", "fulham", "cottagers", "crystal palace", "palace",
        "nottingham forest", "forest", "bournemouth", "cherries", "wolves", "wolverhampton", "everton",
        "toffees", "leicester", "foxes", "leeds", "southampton", "saints", "sheffield united", "blades",
        "burnley", "clarets", "luton", "ipswich",
    ),
    "LA_LIGA": (
        "la liga", "laliga", "spanish league", "real madrid", "barcelona", "barca", "atletico madrid",
        "atletico", "sevilla", "real sociedad", "villarreal", "yellow submarine", "real betis", "betis",
        "athletic bilbao", "bilbao", "valencia", "osasuna", "celta vigo", "celta", "mallorca", "girona",
        "getafe", "rayo vallecano", "rayo", "alaves", "cadiz", "almeria", "las palmas", "granada",
    ),
    "BUNDESLIGA": (
        "bundesliga", "german league", "bayern", "bayern munich", "borussia dortmund", "dortmund", "bvb",
        "rb leipzig", "leipzig", "bayer leverkusen", "leverkusen", "union berlin", "freiburg",
        "eintracht frankfurt", "frankfurt", "wolfsburg", "mainz", "hoffenheim", "werder bremen", "bremen",
        "borussia monchengladbach", "gladbach", "augsburg", "koln", "cologne", "vfb stuttgart",
        "stuttgart", "bochum", "heidenheim", "darmstadt",
    ),
    "SERIE_A": (
        "serie a", "italian league", "inter milan", "inter", "ac milan", "milan", "juventus", "juve",
        "napoli", "roma", "as roma", "lazio", "atalanta", "fiorentina", "viola", "torino", "toro",
        "bologna", "monza", "udinese", "sassuolo", "empoli", "lecce", "verona", "hellas verona",
        "cagliari", "genoa", "salernitana", "frosinone",
    ),
    "MLS": (
        "mls", "atlanta united", "lafc", "la galaxy", "galaxy", "inter miami", "sounders",
        "seattle sounders", "timbers", "portland timbers", "rapids", "whitecaps", "sporting kc", "skc",
        "fc dallas", "houston dynamo", "austin fc", "real salt lake", "rsl", "minnesota united", "loons",
        "chicago fire", "nashville sc", "columbus crew", "dc united", "new york red bulls", "red bulls",
        "nycfc", "new york city fc", "philadelphia union", "union", "new england revolution", "revs",
        "montreal", "cf montreal", "toronto fc", "tfc", "orlando city", "charlotte fc", "cincinnati",
        "fc cincinnati",
    ),
}

# Keyword fallback order when no explicit league marker is present.
LEAGUE_KEYWORD_PRIORITY: Tuple[str, ...] = (
    "NBA",
    "NFL",
    "MLB",
    "NHL",
    "EPL",
    "LA_LIGA",
    "BUNDESLIGA",
    "SERIE_A",
    "MLS",
)

# Explicit league markers, checked before the keyword fallback.
LEAGUE_PATTERNS: Tuple[Tuple[str, str], ...] = (
    (r"\bnba\b", "NBA"),
    (r"\bnfl\b", "NFL"),
    (r"\bmlb\b", "MLB"),
    (r"\bnhl\b", "NHL"),
    (r"\bmls\b", "MLS"),
    (r"\bepl\b|\bpremier\s+league\b", "EPL"),
    (r"\bla\s?liga\b|\blasliga\b", "LA_LIGA"),
    (r"\bbundesliga\b", "BUNDESLIGA"),
    (r"\bserie\s+a\b", "SERIE_A"),
    (r"\bligue\s*1\b", "LIGUE_1"),
    (r"\bchampions\s+league\b|\bucl\b", "UCL"),
    (r"\beuropa\s+league\b|\buel\b", "UEL"),
    (r"\bufc\b|\bmma\b", "UFC"),
    (r"\batp\b|\bwta\b|\btennis\b", "TENNIS"),
    (r"\bpga\b|\bgolf\b", "GOLF"),
    (r"\bf1\b|\bformula\s*1\b|\bgrand\s+prix\b", "F1"),
    (r"\besports?\b|\bvalorant\b|\bdota\b|\bleague\s+of\s+legends\b", "ESPORTS"),
    (r"\bncaa\s+football\b|\bcollege\s+football\b|\bcfb\b", "NCAA_FB"),
    (r"\bncaa\s+basketball\b|\bcollege\s+basketball\b|\bmarch\s+madness\b", "NCAA_BB"),
)

# Cross-domain entity aliases used by the fingerprint builder.
ENTITY_ALIASES: Dict[str, str] = {
    "btc": "BITCOIN",
    "bitcoin": "BITCOIN",
    "eth": "ETHEREUM",
    "ethereum": "ETHEREUM",
    "sol": "SOLANA",
    "solana": "SOLANA",
    "xrp": "XRP",
    "ripple": "XRP",
    "doge": "DOGECOIN",
    "dogecoin": "DOGECOIN",
    "ada": "CARDANO",
    "cardano": "CARDANO",
    "bnb": "BNB",
    "avax": "AVALANCHE",
    "matic": "POLYGON",
    "ltc": "LITECOIN",
    "litecoin": "LITECOIN",
    "trump": "DONALD_TRUMP",
    "donald trump": "DONALD_TRUMP",
    "biden": "JOE_BIDEN",
    "joe biden": "JOE_BIDEN",
    "harris": "KAMALA_HARRIS",
    "kamala harris": "KAMALA_HARRIS",
    "kamala": "KAMALA_HARRIS",
    "desantis": "RON_DESANTIS",
    "newsom": "GAVIN_NEWSOM",
    "haley": "NIKKI_HALEY",
    "vance": "JD_VANCE",
    "putin": "VLADIMIR_PUTIN",
    "zelensky": "VOLODYMYR_ZELENSKY",
    "zelenskyy": "VOLODYMYR_ZELENSKY",
    "xi jinping": "XI_JINPING",
    "netanyahu": "BENJAMIN_NETANYAHU",
    "macron": "EMMANUEL_MACRON",
    "starmer": "KEIR_STARMER",
    "gdp": "GDP",
    "cpi": "CPI",
    "ppi": "PPI",
    "pce": "PCE",
    "nfp": "NFP",
    "nonfarm payrolls": "NFP",
    "non farm payrolls": "NFP",
    "unemployment": "UNEMPLOYMENT_RATE",
    "unemployment rate": "UNEMPLOYMENT_RATE",
    "jobless claims": "JOBLESS_CLAIMS",
    "inflation": "INFLATION",
    "interest rate": "INTEREST_RATE",
    "fed rate": "FED_RATE",
    "fed funds": "FED_RATE",
    "federal funds": "FED_RATE",
    "fomc": "FOMC",
    "apple": "AAPL",
    "aapl": "AAPL",
    "amazon": "AMZN",
    "microsoft": "MSFT",
    "tesla": "TSLA",
    "tsla": "TSLA",
    "nvidia": "NVDA",
    "nvda": "NVDA",
    "sp500": "SP500",
    "s p 500": "SP500",
    "nasdaq": "NASDAQ",
    "dow jones": "DOW_JONES",
    "djia": "DOW_JONES",
    "gold": "GOLD",
    "oil": "OIL",
    "super bowl": "SUPER_BOWL",
    "world series": "WORLD_SERIES",
    "nba finals": "NBA_FINALS",
    "stanley cup": "STANLEY_CUP",
    "presidential election": "US_PRESIDENTIAL_ELECTION",
    "midterms": "US_MIDTERMS",
    "oscars": "OSCARS",
    "oscar": "OSCARS",
}

PRICE_ENTITIES = frozenset(
    {
        "BITCOIN",
        "ETHEREUM",
        "SOLANA",
        "XRP",
        "DOGECOIN",
        "CARDANO",
        "BNB",
        "AVALANCHE",
        "POLYGON",
        "LITECOIN",
        "AAPL",
        "AMZN",
        "MSFT",
        "TSLA",
        "NVDA",
        "SP500",
        "NASDAQ",
        "DOW_JONES",
        "GOLD",
        "OIL",
    }
)

MACRO_ENTITIES = frozenset(
    {
        "CPI",
        "GDP",
        "NFP",
        "FOMC",
        "FED_RATE",
        "UNEMPLOYMENT_RATE",
        "JOBLESS_CLAIMS",
        "INFLATION",
        "INTEREST_RATE",
        "PPI",
        "PCE",
    }
)
