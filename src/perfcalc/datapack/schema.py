"""SQLite layout of a versioned performance data pack."""

SCHEMA_VERSION = 1

TAKEOFF_METRICS = ("todr_m", "asdr_m", "bfl_m", "oei_net_climb_pct")
LANDING_METRICS = ("ldr_m",)
V_SPEED_FIELDS = ("v1_kt", "vr_kt", "v2_kt", "vref_kt")
GRID_COLUMNS = ("weight_kg", "pa_m", "oat_c")

REQUIRED_TABLES = (
    "metadata",
    "limits",
    "v_speeds",
    "takeoff_table",
    "landing_table",
    "corrections",
)
OPTIONAL_TABLES = ("company_limits",)

CREATE_STATEMENTS = (
    """
    CREATE TABLE metadata (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE limits (
        aircraft TEXT NOT NULL,
        key TEXT NOT NULL,
        value REAL NOT NULL,
        PRIMARY KEY (aircraft, key)
    )
    """,
    """
    CREATE TABLE v_speeds (
        aircraft TEXT NOT NULL,
        weight_kg REAL NOT NULL,
        flap INTEGER NOT NULL,
        v1_kt REAL,
        vr_kt REAL,
        v2_kt REAL,
        vref_kt REAL,
        PRIMARY KEY (aircraft, flap, weight_kg)
    )
    """,
    """
    CREATE TABLE takeoff_table (
        aircraft TEXT NOT NULL,
        flap INTEGER NOT NULL,
        bleeds_on INTEGER NOT NULL,
        anti_ice_on INTEGER NOT NULL,
        weight_kg REAL NOT NULL,
        pa_m REAL NOT NULL,
        oat_c REAL NOT NULL,
        todr_m REAL,
        asdr_m REAL,
        bfl_m REAL,
        oei_net_climb_pct REAL,
        PRIMARY KEY (aircraft, flap, bleeds_on, anti_ice_on, weight_kg, pa_m, oat_c)
    )
    """,
    """
    CREATE TABLE landing_table (
        aircraft TEXT NOT NULL,
        flap INTEGER NOT NULL,
        anti_ice_on INTEGER NOT NULL,
        weight_kg REAL NOT NULL,
        pa_m REAL NOT NULL,
        oat_c REAL NOT NULL,
        ldr_m REAL,
        PRIMARY KEY (aircraft, flap, anti_ice_on, weight_kg, pa_m, oat_c)
    )
    """,
    """
    CREATE TABLE corrections (
        aircraft TEXT NOT NULL,
        correction_type TEXT NOT NULL,
        breakpoint_value REAL NOT NULL,
        effect REAL NOT NULL,
        PRIMARY KEY (aircraft, correction_type, breakpoint_value)
    )
    """,
    """
    CREATE TABLE company_limits (
        key TEXT PRIMARY KEY,
        kind TEXT NOT NULL,
        value REAL NOT NULL
    )
    """,
)
