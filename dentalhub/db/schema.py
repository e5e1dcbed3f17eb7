"""
Database Schema

DDL for both supported dialects. Identifiers are text UUIDs and JSON
documents are stored as text (SQLite) or JSONB (PostgreSQL).
"""

SQLITE_TABLES = [
    "practices",
    "api_keys",
    "patients",
    "patient_relationships",
    "appointments",
    "appointment_reminders",
    "staff_profiles",
    "campaigns",
    "procedure_categories",
    "procedure_codes",
    "fee_schedules",
    "calls",
    "call_transcripts",
    "insurance_events",
    "ai_events",
]

SQLITE_SCHEMA = """
CREATE TABLE IF NOT EXISTS practices (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    timezone TEXT NOT NULL DEFAULT 'America/New_York',
    phone TEXT,
    email TEXT,
    sikka_practice_id TEXT,
    is_active INTEGER NOT NULL DEFAULT 1,
    settings TEXT DEFAULT '{}',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS api_keys (
    api_key TEXT PRIMARY KEY,
    practice_id TEXT NOT NULL REFERENCES practices(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    permissions TEXT DEFAULT '[]',
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    expires_at TEXT,
    last_used_at TEXT
);

CREATE TABLE IF NOT EXISTS patients (
    id TEXT PRIMARY KEY,
    practice_id TEXT NOT NULL REFERENCES practices(id) ON DELETE CASCADE,
    first_name TEXT NOT NULL,
    last_name TEXT NOT NULL,
    email TEXT,
    phone TEXT,
    date_of_birth TEXT,
    address TEXT,
    medical_history TEXT DEFAULT '{}',
    sikka_patient_id TEXT,
    status TEXT NOT NULL DEFAULT 'active',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS patient_relationships (
    id TEXT PRIMARY KEY,
    practice_id TEXT NOT NULL,
    patient_id TEXT NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
    related_patient_id TEXT NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
    relationship_type TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE (patient_id, related_patient_id)
);

CREATE TABLE IF NOT EXISTS appointments (
    id TEXT PRIMARY KEY,
    practice_id TEXT NOT NULL REFERENCES practices(id) ON DELETE CASCADE,
    patient_id TEXT NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
    provider_id TEXT,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'scheduled',
    appointment_type TEXT,
    notes TEXT,
    created_by TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS appointment_reminders (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    appointment_id TEXT NOT NULL REFERENCES appointments(id) ON DELETE CASCADE,
    type TEXT NOT NULL,
    scheduled_time TEXT NOT NULL,
    sent INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS staff_profiles (
    id TEXT PRIMARY KEY,
    practice_id TEXT NOT NULL REFERENCES practices(id) ON DELETE CASCADE,
    user_id TEXT,
    first_name TEXT NOT NULL,
    last_name TEXT NOT NULL,
    email TEXT,
    role TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    specialization TEXT,
    license_number TEXT,
    license_expiry TEXT,
    certifications TEXT DEFAULT '[]',
    skills TEXT DEFAULT '[]',
    contact_info TEXT DEFAULT '{}',
    hire_date TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS campaigns (
    id TEXT PRIMARY KEY,
    practice_id TEXT NOT NULL REFERENCES practices(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'draft',
    schedule TEXT,
    audience TEXT DEFAULT '{}',
    content TEXT NOT NULL,
    metrics TEXT DEFAULT '{}',
    settings TEXT DEFAULT '{}',
    metadata TEXT DEFAULT '{}',
    created_by TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS procedure_categories (
    id TEXT PRIMARY KEY,
    practice_id TEXT NOT NULL,
    sikka_category_id TEXT NOT NULL,
    name TEXT NOT NULL,
    UNIQUE (practice_id, sikka_category_id)
);

CREATE TABLE IF NOT EXISTS procedure_codes (
    id TEXT PRIMARY KEY,
    practice_id TEXT NOT NULL,
    code TEXT NOT NULL,
    description TEXT NOT NULL,
    abbreviation TEXT,
    category_id TEXT REFERENCES procedure_categories(id),
    explosion_code TEXT,
    submit_to_insurance INTEGER NOT NULL DEFAULT 1,
    allow_discount INTEGER NOT NULL DEFAULT 1,
    procedure_type TEXT,
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (practice_id, code)
);

CREATE TABLE IF NOT EXISTS fee_schedules (
    id TEXT PRIMARY KEY,
    procedure_code_id TEXT NOT NULL REFERENCES procedure_codes(id) ON DELETE CASCADE,
    fee_amount REAL NOT NULL,
    effective_date TEXT NOT NULL,
    end_date TEXT
);

CREATE TABLE IF NOT EXISTS calls (
    id TEXT PRIMARY KEY,
    practice_id TEXT NOT NULL,
    retell_call_id TEXT UNIQUE,
    patient_id TEXT,
    campaign_id TEXT,
    phone_number TEXT NOT NULL,
    purpose TEXT NOT NULL,
    priority TEXT NOT NULL DEFAULT 'normal',
    status TEXT NOT NULL DEFAULT 'queued',
    duration_seconds INTEGER,
    recording_url TEXT,
    analysis TEXT DEFAULT '{}',
    metadata TEXT DEFAULT '{}',
    error_message TEXT,
    created_at TEXT NOT NULL,
    started_at TEXT,
    ended_at TEXT
);

CREATE TABLE IF NOT EXISTS call_transcripts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    call_id TEXT NOT NULL REFERENCES calls(id) ON DELETE CASCADE,
    speaker TEXT NOT NULL,
    text TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    confidence REAL
);

CREATE TABLE IF NOT EXISTS insurance_events (
    id TEXT PRIMARY KEY,
    practice_id TEXT NOT NULL,
    event_type TEXT NOT NULL,
    request_id TEXT,
    patient_id TEXT,
    reference_id TEXT,
    status TEXT,
    payload TEXT DEFAULT '{}',
    received_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS ai_events (
    id TEXT PRIMARY KEY,
    event_type TEXT NOT NULL,
    request_id TEXT,
    organization_id TEXT,
    payload TEXT DEFAULT '{}',
    received_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_patients_practice ON patients(practice_id);
CREATE INDEX IF NOT EXISTS idx_patients_sikka ON patients(practice_id, sikka_patient_id);
CREATE INDEX IF NOT EXISTS idx_appointments_practice_start ON appointments(practice_id, start_time);
CREATE INDEX IF NOT EXISTS idx_staff_practice ON staff_profiles(practice_id);
CREATE INDEX IF NOT EXISTS idx_campaigns_practice ON campaigns(practice_id, created_at);
CREATE INDEX IF NOT EXISTS idx_calls_practice ON calls(practice_id, created_at);
CREATE INDEX IF NOT EXISTS idx_calls_campaign ON calls(campaign_id);
CREATE INDEX IF NOT EXISTS idx_call_transcripts_call_id ON call_transcripts(call_id);
CREATE INDEX IF NOT EXISTS idx_insurance_events_patient ON insurance_events(practice_id, patient_id);
"""

POSTGRES_SCHEMA = """
CREATE TABLE IF NOT EXISTS practices (
    id VARCHAR(64) PRIMARY KEY,
    name VARCHAR(200) NOT NULL,
    timezone VARCHAR(64) NOT NULL DEFAULT 'America/New_York',
    phone VARCHAR(32),
    email VARCHAR(255),
    sikka_practice_id VARCHAR(64),
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    settings JSONB DEFAULT '{}',
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS api_keys (
    api_key VARCHAR(128) PRIMARY KEY,
    practice_id VARCHAR(64) NOT NULL REFERENCES practices(id) ON DELETE CASCADE,
    name VARCHAR(100) NOT NULL,
    permissions JSONB DEFAULT '[]',
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    expires_at TIMESTAMP,
    last_used_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS patients (
    id VARCHAR(64) PRIMARY KEY,
    practice_id VARCHAR(64) NOT NULL REFERENCES practices(id) ON DELETE CASCADE,
    first_name VARCHAR(100) NOT NULL,
    last_name VARCHAR(100) NOT NULL,
    email VARCHAR(255),
    phone VARCHAR(32),
    date_of_birth DATE,
    address JSONB,
    medical_history JSONB DEFAULT '{}',
    sikka_patient_id VARCHAR(64),
    status VARCHAR(20) NOT NULL DEFAULT 'active',
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS patient_relationships (
    id VARCHAR(64) PRIMARY KEY,
    practice_id VARCHAR(64) NOT NULL,
    patient_id VARCHAR(64) NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
    related_patient_id VARCHAR(64) NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
    relationship_type VARCHAR(20) NOT NULL,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (patient_id, related_patient_id)
);

CREATE TABLE IF NOT EXISTS appointments (
    id VARCHAR(64) PRIMARY KEY,
    practice_id VARCHAR(64) NOT NULL REFERENCES practices(id) ON DELETE CASCADE,
    patient_id VARCHAR(64) NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
    provider_id VARCHAR(64),
    start_time TIMESTAMP NOT NULL,
    end_time TIMESTAMP NOT NULL,
    status VARCHAR(20) NOT NULL DEFAULT 'scheduled',
    appointment_type VARCHAR(100),
    notes TEXT,
    created_by VARCHAR(64),
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS appointment_reminders (
    id SERIAL PRIMARY KEY,
    appointment_id VARCHAR(64) NOT NULL REFERENCES appointments(id) ON DELETE CASCADE,
    type VARCHAR(10) NOT NULL,
    scheduled_time TIMESTAMP NOT NULL,
    sent BOOLEAN NOT NULL DEFAULT FALSE
);

CREATE TABLE IF NOT EXISTS staff_profiles (
    id VARCHAR(64) PRIMARY KEY,
    practice_id VARCHAR(64) NOT NULL REFERENCES practices(id) ON DELETE CASCADE,
    user_id VARCHAR(64),
    first_name VARCHAR(100) NOT NULL,
    last_name VARCHAR(100) NOT NULL,
    email VARCHAR(255),
    role VARCHAR(20) NOT NULL,
    status VARCHAR(20) NOT NULL DEFAULT 'active',
    specialization VARCHAR(100),
    license_number VARCHAR(64),
    license_expiry DATE,
    certifications JSONB DEFAULT '[]',
    skills JSONB DEFAULT '[]',
    contact_info JSONB DEFAULT '{}',
    hire_date DATE,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS campaigns (
    id VARCHAR(64) PRIMARY KEY,
    practice_id VARCHAR(64) NOT NULL REFERENCES practices(id) ON DELETE CASCADE,
    name VARCHAR(200) NOT NULL,
    type VARCHAR(10) NOT NULL,
    status VARCHAR(20) NOT NULL DEFAULT 'draft',
    schedule JSONB,
    audience JSONB DEFAULT '{}',
    content JSONB NOT NULL,
    metrics JSONB DEFAULT '{}',
    settings JSONB DEFAULT '{}',
    metadata JSONB DEFAULT '{}',
    created_by VARCHAR(64),
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS procedure_categories (
    id VARCHAR(64) PRIMARY KEY,
    practice_id VARCHAR(64) NOT NULL,
    sikka_category_id VARCHAR(64) NOT NULL,
    name VARCHAR(200) NOT NULL,
    UNIQUE (practice_id, sikka_category_id)
);

CREATE TABLE IF NOT EXISTS procedure_codes (
    id VARCHAR(64) PRIMARY KEY,
    practice_id VARCHAR(64) NOT NULL,
    code VARCHAR(20) NOT NULL,
    description TEXT NOT NULL,
    abbreviation VARCHAR(50),
    category_id VARCHAR(64) REFERENCES procedure_categories(id),
    explosion_code VARCHAR(50),
    submit_to_insurance BOOLEAN NOT NULL DEFAULT TRUE,
    allow_discount BOOLEAN NOT NULL DEFAULT TRUE,
    procedure_type VARCHAR(50),
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (practice_id, code)
);

CREATE TABLE IF NOT EXISTS fee_schedules (
    id VARCHAR(64) PRIMARY KEY,
    procedure_code_id VARCHAR(64) NOT NULL REFERENCES procedure_codes(id) ON DELETE CASCADE,
    fee_amount DOUBLE PRECISION NOT NULL,
    effective_date TIMESTAMP NOT NULL,
    end_date TIMESTAMP
);

CREATE TABLE IF NOT EXISTS calls (
    id VARCHAR(64) PRIMARY KEY,
    practice_id VARCHAR(64) NOT NULL,
    retell_call_id VARCHAR(128) UNIQUE,
    patient_id VARCHAR(64),
    campaign_id VARCHAR(64),
    phone_number VARCHAR(32) NOT NULL,
    purpose VARCHAR(32) NOT NULL,
    priority VARCHAR(10) NOT NULL DEFAULT 'normal',
    status VARCHAR(20) NOT NULL DEFAULT 'queued',
    duration_seconds INTEGER,
    recording_url TEXT,
    analysis JSONB DEFAULT '{}',
    metadata JSONB DEFAULT '{}',
    error_message TEXT,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    started_at TIMESTAMP,
    ended_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS call_transcripts (
    id SERIAL PRIMARY KEY,
    call_id VARCHAR(64) NOT NULL REFERENCES calls(id) ON DELETE CASCADE,
    speaker VARCHAR(50) NOT NULL,
    text TEXT NOT NULL,
    timestamp TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    confidence DOUBLE PRECISION
);

CREATE TABLE IF NOT EXISTS insurance_events (
    id VARCHAR(64) PRIMARY KEY,
    practice_id VARCHAR(64) NOT NULL,
    event_type VARCHAR(64) NOT NULL,
    request_id VARCHAR(128),
    patient_id VARCHAR(64),
    reference_id VARCHAR(128),
    status VARCHAR(64),
    payload JSONB DEFAULT '{}',
    received_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS ai_events (
    id VARCHAR(64) PRIMARY KEY,
    event_type VARCHAR(64) NOT NULL,
    request_id VARCHAR(128),
    organization_id VARCHAR(128),
    payload JSONB DEFAULT '{}',
    received_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_patients_practice ON patients(practice_id);
CREATE INDEX IF NOT EXISTS idx_patients_sikka ON patients(practice_id, sikka_patient_id);
CREATE INDEX IF NOT EXISTS idx_appointments_practice_start ON appointments(practice_id, start_time);
CREATE INDEX IF NOT EXISTS idx_staff_practice ON staff_profiles(practice_id);
CREATE INDEX IF NOT EXISTS idx_campaigns_practice ON campaigns(practice_id, created_at);
CREATE INDEX IF NOT EXISTS idx_calls_practice ON calls(practice_id, created_at);
CREATE INDEX IF NOT EXISTS idx_calls_campaign ON calls(campaign_id);
CREATE INDEX IF NOT EXISTS idx_call_transcripts_call_id ON call_transcripts(call_id);
CREATE INDEX IF NOT EXISTS idx_insurance_events_patient ON insurance_events(practice_id, patient_id);
"""
