"""
Reference tables for location enrichment.

Keys are lower-case. Values are always one of REGION_LABELS, so an enriched
location is recognised as enriched on the next pass.
"""

BW = "Baden-Württemberg"
BY = "Bayern"
BE = "Berlin"
BB = "Brandenburg"
HB = "Bremen"
HH = "Hamburg"
HE = "Hessen"
MV = "Mecklenburg-Vorpommern"
NI = "Niedersachsen"
NW = "Nordrhein-Westfalen"
RP = "Rheinland-Pfalz"
SL = "Saarland"
SN = "Sachsen"
ST = "Sachsen-Anhalt"
SH = "Schleswig-Holstein"
TH = "Thüringen"

AT = "Österreich"
CH = "Schweiz"

GERMAN_STATES = (BW, BY, BE, BB, HB, HH, HE, MV, NI, NW, RP, SL, SN, ST, SH, TH)
COUNTRY_LABELS = (AT, CH)
REGION_LABELS = GERMAN_STATES + COUNTRY_LABELS

POSTAL_CODES = {
    "01307": SN, "04103": SN, "04109": SN, "09113": SN, "08056": SN, "02826": SN,
    "03048": BB, "14469": BB, "14770": BB, "16816": BB, "15236": BB,
    "06120": ST, "06112": ST, "39120": ST, "06847": ST,
    "07747": TH, "99084": TH, "99423": TH, "07548": TH,
    "10115": BE, "10117": BE, "12203": BE, "13353": BE, "13125": BE,
    "17475": MV, "18057": MV, "19053": MV, "17036": MV,
    "20095": HH, "20246": HH, "22767": HH,
    "23538": SH, "24105": SH, "24937": SH,
    "26133": NI, "30625": NI, "37075": NI, "38106": NI, "49076": NI,
    "27568": HB, "28177": HB, "28205": HB,
    "33604": NW, "40225": NW, "44137": NW, "44791": NW, "45147": NW,
    "48149": NW, "50667": NW, "50937": NW, "52074": NW, "53127": NW,
    "34117": HE, "35043": HE, "35392": HE, "36037": HE, "36251": HE,
    "60311": HE, "60590": HE, "63450": HE, "64283": HE, "65189": HE,
    "54290": RP, "55131": RP, "56068": RP, "67063": RP, "67655": RP,
    "66111": SL, "66421": SL,
    "68167": BW, "69120": BW, "70173": BW, "72076": BW, "74613": BW,
    "74072": BW, "76133": BW, "78464": BW, "79106": BW, "89081": BW,
    "80331": BY, "81377": BY, "81675": BY, "86156": BY, "90419": BY,
    "91054": BY, "93053": BY, "94032": BY, "95445": BY, "97080": BY, "97616": BY,
}

CITIES = {
    "aachen": NW, "augsburg": BY, "bad hersfeld": HE, "bad homburg": HE,
    "bad nauheim": HE, "bamberg": BY, "bayreuth": BY, "berlin": BE,
    "bielefeld": NW, "bochum": NW, "bonn": NW, "brandenburg an der havel": BB,
    "braunschweig": NI, "bremen": HB, "bremerhaven": HB, "celle": NI,
    "chemnitz": SN, "coburg": BY, "cottbus": BB, "darmstadt": HE,
    "dessau": ST, "dessau-roßlau": ST, "dortmund": NW, "dresden": SN,
    "duisburg": NW, "düsseldorf": NW, "duesseldorf": NW, "eberswalde": BB,
    "erfurt": TH, "erlangen": BY, "esslingen": BW, "essen": NW,
    "flensburg": SH, "frankfurt": HE, "frankfurt am main": HE,
    "frankfurt (oder)": BB, "freiburg": BW, "freiburg im breisgau": BW,
    "friedrichshafen": BW, "fulda": HE, "gelsenkirchen": NW, "gera": TH,
    "gießen": HE, "giessen": HE, "görlitz": SN, "göttingen": NI,
    "goettingen": NI, "greifswald": MV, "hagen": NW, "halle": ST,
    "halle (saale)": ST, "hamburg": HH, "hamm": NW, "hanau": HE,
    "hannover": NI, "heidelberg": BW, "heilbronn": BW, "hildesheim": NI,
    "homburg": SL, "ingolstadt": BY, "jena": TH, "kaiserslautern": RP,
    "karlsruhe": BW, "kassel": HE, "kempten": BY, "kiel": SH,
    "koblenz": RP, "köln": NW, "koeln": NW, "konstanz": BW, "krefeld": NW,
    "landshut": BY, "leipzig": SN, "leverkusen": NW, "lübeck": SH,
    "luebeck": SH, "ludwigsburg": BW, "ludwigshafen": RP, "lüneburg": NI,
    "magdeburg": ST, "mainz": RP, "mannheim": BW, "marburg": HE,
    "minden": NW, "mönchengladbach": NW, "mülheim": NW, "münchen": BY,
    "muenchen": BY, "münster": NW, "muenster": NW, "neubrandenburg": MV,
    "neuruppin": BB, "nürnberg": BY, "nuernberg": BY, "offenbach": HE,
    "offenburg": BW, "öhringen": BW, "oldenburg": NI, "osnabrück": NI,
    "paderborn": NW, "passau": BY, "pforzheim": BW, "potsdam": BB,
    "ravensburg": BW, "regensburg": BY, "reutlingen": BW, "rosenheim": BY,
    "rostock": MV, "saarbrücken": SL, "saarbruecken": SL, "schwerin": MV,
    "siegen": NW, "stralsund": MV, "stuttgart": BW, "suhl": TH,
    "trier": RP, "tübingen": BW, "tuebingen": BW, "ulm": BW,
    "villingen-schwenningen": BW, "weimar": TH, "wiesbaden": HE,
    "wolfsburg": NI, "wuppertal": NW, "würzburg": BY, "wuerzburg": BY,
    "zwickau": SN,
}

FOREIGN_CITIES = {
    "wien": AT, "graz": AT, "linz": AT, "salzburg": AT, "innsbruck": AT,
    "klagenfurt": AT, "st. pölten": AT, "feldkirch": AT,
    "zürich": CH, "zuerich": CH, "bern": CH, "basel": CH, "genf": CH,
    "luzern": CH, "st. gallen": CH, "winterthur": CH, "lausanne": CH,
    "lugano": CH, "chur": CH, "aarau": CH,
}

# Facilities whose listings often carry only the hospital name as location
CLINIC_OVERRIDES = {
    "charité": BE,
    "charite": BE,
    "vivantes": BE,
    "unfallkrankenhaus berlin": BE,
    "uke": HH,
    "universitätsklinikum hamburg-eppendorf": HH,
    "asklepios klinik st. georg": HH,
    "mhh": NI,
    "medizinische hochschule hannover": NI,
    "uniklinik rwth aachen": NW,
    "klinikum rechts der isar": BY,
    "lmu klinikum": BY,
}

# Words that follow "in" / "Ort:" in job descriptions but are not places
NON_PLACE_TERMS = frozenset({
    "radiologie", "kardiologie", "chirurgie", "anästhesie", "anasthesie",
    "neurologie", "gynäkologie", "gynakologie", "pädiatrie", "padiatrie",
    "psychiatrie", "orthopädie", "orthopadie", "urologie", "dermatologie",
    "onkologie", "pneumologie", "nephrologie", "gastroenterologie",
    "innere", "intensivmedizin", "notaufnahme", "allgemeinmedizin",
    "nuklearmedizin", "pathologie", "hämatologie", "hamatologie",
    "endokrinologie", "rheumatologie", "geriatrie", "neonatologie",
    "weiterbildung", "facharzt", "oberarzt", "assistenzarzt",
    "gefäßchirurgie", "unfallchirurgie", "viszeralchirurgie",
    "herzchirurgie", "thoraxchirurgie", "kinderchirurgie",
    "hals-nasen-ohrenheilkunde", "augenheilkunde", "palliativmedizin",
    "arbeitsmedizin", "rechtsmedizin", "mikrobiologie", "virologie",
    "transfusionsmedizin", "strahlentherapie", "laboratoriumsmedizin",
    "vollzeit", "teilzeit",
})
