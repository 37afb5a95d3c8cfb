"""
Central configuration for condolence-card.

Keep runtime-safe (no secrets).
"""

# UI
GALLERY_COLUMNS_DESKTOP = 3
GALLERY_COLUMNS_MOBILE = 1
PREVIEW_WIDTH = 360
GALLERY_WIDTH = 220

# Card canvas
CARD_WIDTH = 600
CARD_HEIGHT = 800
CARD_CENTER_X = CARD_WIDTH // 2
BACKGROUND_COLOR = (0, 0, 0)  # #000000
TEXT_COLOR = (255, 255, 255)  # #FFFFFF

# Fixed strings
TITLE_TEXT = "AL FATIHAH"
ARABIC_TEXT = "إِنَّا لِلَّهِ وَإِنَّا إِلَيْهِ رَاجِعُونَ"
CLOSING_TEXT = "Our Condolences"
DEFAULT_MESSAGE = "May their soul be blessed with mercy and placed among the righteous believers."

# Font sizes (px)
TITLE_FONT_SIZE = 32
ARABIC_FONT_SIZE = 28
NAME_FONT_SIZE = 28
DATES_FONT_SIZE = 18
INFO_FONT_SIZE = 16
MESSAGE_FONT_SIZE = 20
CLOSING_FONT_SIZE = 36

# Baselines (y, px)
TITLE_Y = 60
ARABIC_Y = 120
NAME_Y = 460
DATES_Y = 490
INFO_Y = 515
RULE_Y = 560
MESSAGE_Y = 600
MESSAGE_LINE_HEIGHT = 30
CLOSING_GAP_PX = 80

# Photo circle
PHOTO_CENTER = (CARD_CENTER_X, 300)
PHOTO_RADIUS = 120
PHOTO_COVER_FACTOR = 2.4  # draw size = radius * factor on the short side
PHOTO_BORDER_WIDTH = 3

RULE_MARGIN_X = 50
RULE_WIDTH = 2
MESSAGE_MARGIN_PX = 60  # total horizontal margin for wrapped text

# PNG smaller than this is treated as a blank/failed export
MIN_PNG_BYTES = 1000

# Printable PDF: 600x800 px at 96 DPI
PDF_PX_TO_PT = 72 / 96

# Persistence
STORAGE_BUCKET = "death-records-images"
RECORDS_TABLE = "death_records"
ORIGINAL_FOLDER = "original"
CONDOLENCE_FOLDER = "condolence"
STORAGE_CACHE_CONTROL = "3600"
DEFAULT_LOCAL_STORE_DIR = ".condolence_store"
DEFAULT_GALLERY_CACHE = ".condolence_gallery.json"
