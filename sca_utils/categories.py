# sca_utils/categories.py
# Default merchant keyword table, Singapore-focused.
# Ordered: on equal keyword length the earlier category wins, so keep
# this in SpendingCategory order when extending it.

from sca_core.models import SpendingCategory as C

CATEGORY_KEYWORDS = (
    (
        C.DINING,
        (
            # restaurant chains
            "din tai fung", "crystal jade", "paradise group", "imperial treasure",
            "hai di lao", "haidilao", "swee choon", "jumbo seafood", "song fa",
            "tim ho wan", "putien", "burnt ends", "jaan", "luke's oyster",
            "ps cafe", "common man coffee", "ya kun", "toast box", "kopitiam",
            "koufu", "foodfare", "food republic", "food court",
            # fast food
            "mcdonald", "mcdonalds", "mcd", "burger king", "kfc",
            "popeyes", "subway", "jollibee", "mos burger", "shake shack",
            "five guys", "wendy", "texas chicken", "long john silver",
            "pizza hut", "domino", "dominos",
            # cafes & bakeries
            "starbucks", "coffee bean", "costa coffee", "nana's green tea",
            "cedele", "breadtalk", "bread talk", "delifrance", "paul bakery",
            "tiong bahru bakery", "bacha coffee", "% arabica",
            # delivery
            "foodpanda", "food panda", "deliveroo", "grabfood", "grab food",
            # generic
            "restaurant", "cafe", "bistro", "grill", "kitchen", "eatery",
            "dining", "bakery", "bar", "pub", "hawker", "food", "dim sum",
            "sushi", "ramen", "noodle", "rice", "chicken", "fish",
            "prata", "murtabak", "nasi", "mee", "laksa", "satay",
            "bak kut teh", "char kway teow", "hokkien mee", "cai png",
            "wonton", "seafood", "steamboat", "hotpot", "bbq", "yakiniku",
            "izakaya", "teppanyaki", "korean bbq",
        ),
    ),
    (
        C.GROCERIES,
        (
            "fairprice", "fair price", "ntuc", "cold storage", "giant",
            "sheng siong", "don don donki", "donki", "don quijote",
            "redmart", "amazon fresh", "market place", "marketplace",
            "prime supermarket", "hao mart", "scarlett supermarket",
            "meidi-ya", "meidi ya", "isetan supermarket",
            "honestbee", "pandamart", "grab mart", "grabmart",
            "supermarket", "grocer", "market", "provision",
        ),
    ),
    (
        C.TRANSPORT,
        (
            "grab", "gojek", "go-jek", "tada", "ryde", "comfortdelgro",
            "comfort delgro", "cdg zig",
            "simplygo", "simply go", "ez-link", "ezlink", "ez link",
            "transitlink", "transit link", "smrt", "sbs transit",
            "sbstransit", "bus", "mrt", "lrt",
            "taxi", "cab",
        ),
    ),
    (
        C.TRAVEL,
        (
            "singapore airlines", "sia", "scoot", "jetstar",
            "airasia", "air asia", "cathay", "thai airways",
            "emirates", "qatar airways", "british airways",
            "klm", "lufthansa", "eva air",
            "marriott", "hilton", "hyatt", "shangri-la", "shangri la",
            "mandarin oriental", "ritz carlton", "fairmont", "swissotel",
            "intercontinental", "holiday inn", "crowne plaza",
            "pan pacific", "capella", "fullerton",
            "hotel", "resort", "hostel",
            "agoda", "booking.com", "booking com", "expedia",
            "trip.com", "tripadvisor", "klook", "traveloka",
            "skyscanner", "krisshop", "kris shop",
            "changi", "airport", "duty free", "dfs",
            "airlines", "airline", "airways",
        ),
    ),
    (
        C.ONLINE_SHOPPING,
        (
            "shopee", "lazada", "amazon", "qoo10", "carousell",
            "taobao", "aliexpress", "shein", "temu", "zalora",
            "asos", "love bonito", "pomelo", "charles & keith",
            "apple.com", "apple store", "google play", "app store",
            "spotify", "netflix", "disney+", "disney plus",
            "youtube premium", "hbo", "amazon prime",
            "apple music", "apple tv", "playstation", "nintendo",
            "steam", "twitch",
            "online", ".com", ".sg", "ecommerce",
        ),
    ),
    (
        C.ENTERTAINMENT,
        (
            "golden village", "gv", "shaw theatres", "cathay cineplexes",
            "filmgarde", "the projector", "imax",
            "universal studios", "uss", "sentosa", "marina bay sands",
            "mbs", "gardens by the bay", "zoo", "bird paradise",
            "night safari", "river wonders", "science centre",
            "artscience", "national gallery",
            "sistic", "ticketmaster", "eventbrite", "peatix",
            "concert", "theatre", "theater", "show",
            "karaoke", "ktv", "bowling", "arcade",
            "cinema", "movie", "museum", "gallery",
        ),
    ),
    (
        C.FUEL,
        (
            "shell", "esso", "caltex", "sinopec", "spc",
            "petrol", "petroleum", "gas station", "fuel",
            "ev charging", "charge+", "bluesg", "blue sg",
            "sp mobility",
        ),
    ),
    (
        C.UTILITIES,
        (
            "sp group", "sp services", "singapore power",
            "geneco", "ohm", "tuas power", "senoko",
            "keppel electric", "pacific light", "union power",
            "starhub", "singtel", "m1", "circles.life",
            "giga", "simonly", "tpg",
            "electricity", "utilities", "power supply",
            "water bill", "conservancy", "town council",
        ),
    ),
    (
        C.INSURANCE,
        (
            "prudential", "aia", "great eastern", "ntuc income",
            "singlife", "manulife", "aviva", "axa",
            "tokio marine", "msig", "sompo", "chubb",
            "zurich", "allianz", "fwd",
            "insurance", "premium",
        ),
    ),
    (
        C.HEALTHCARE,
        (
            "raffles medical", "raffles hospital", "mount elizabeth",
            "mt elizabeth", "gleneagles", "parkway", "thomson medical",
            "national university hospital", "nuh", "sgh",
            "singapore general hospital", "tan tock seng", "ttsh",
            "changi general", "cgh", "khoo teck puat",
            "guardian", "watsons", "unity pharmacy",
            "hospital", "clinic", "medical", "dental", "doctor",
            "pharmacy", "health", "polyclinic",
        ),
    ),
    (
        C.EDUCATION,
        (
            "nus", "ntu", "smu", "sutd", "sit",
            "national university", "nanyang technological",
            "polytechnic", "ite", "tuition", "enrichment",
            "school", "university", "college", "academy",
            "course", "training", "education",
            "udemy", "coursera", "skillsfuture",
        ),
    ),
    (
        C.DEPARTMENT_STORE,
        (
            "takashimaya", "isetan", "tangs", "tang",
            "robinsons", "metro", "marks & spencer", "m&s",
            "ion orchard", "paragon", "vivocity",
            "department store", "uniqlo", "zara", "h&m",
            "cotton on", "mango",
        ),
    ),
)
