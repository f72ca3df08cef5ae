
# -------------------------------------------------
# Reference coordinate space
# -------------------------------------------------
REFERENCE_WIDTH = 1048
REFERENCE_HEIGHT = 598

# -------------------------------------------------
# Built-in field layout (reference space)
# -------------------------------------------------
DEFAULT_ELEMENTS = {
    "name": {
        "x": 241,
        "y": 326,
        "font_size": 48,
        "color": "#1e293b",
        "font_weight": "bold",
    },
    "empId": {
        "x": 220,
        "y": 398,
        "font_size": 48,
        "color": "#1e293b",
        "font_weight": "bold",
    },
    "date": {
        "x": 220,
        "y": 517,
        "font_size": 24,
        "color": "#1e293b",
        "font_weight": "bold",
    },
    "serial": {
        "x": 778,
        "y": 141,
        "font_size": 36,
        "color": "#334155",
        "font_weight": "bold",
    },
    "amount": {
        "x": 740,
        "y": 251,
        "font_size": 56,
        "color": "#059669",
        "font_weight": "bold",
    },
    "qr": {
        "x": 800,
        "y": 400,
        "font_size": 0,
        "color": "#000000",
        "font_weight": "normal",
        "width": 150,
        "height": 150,
    },
}

# Serial backing box, reference space. Vertical extents are authored
# against a 36px serial font and follow the configured font size.
SERIAL_BOX_PAD_X = 10
SERIAL_BOX_FONT = 36
SERIAL_BOX_ASCENT = 28
SERIAL_BOX_HEIGHT = 40
SERIAL_BOX_RADIUS = 6
SERIAL_BOX_FILL = (255, 255, 255, 204)

# -------------------------------------------------
# Print layout
# -------------------------------------------------
# cards per page -> (cols, rows)
GRID_LAYOUTS = {
    5: (1, 5),
    10: (2, 5),
    15: (3, 5),
    20: (4, 5),
}
DEFAULT_GRID = GRID_LAYOUTS[10]

A4_WIDTH_IN = 8.27
A4_HEIGHT_IN = 11.69

CSS_DPI = 96
CARD_PADDING_CSS = 5
SEPARATOR_COLOR = "#e2e8f0"
