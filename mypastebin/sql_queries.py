CREATE_TABLE_PASTEBIN = """
CREATE TABLE IF NOT EXISTS pastebin (
  paste_id VARCHAR(8) PRIMARY KEY,
  user_id VARCHAR(255),
  session_id VARCHAR(255),
  title VARCHAR(50),
  tags VARCHAR(15)[],
  format VARCHAR(10) NOT NULL,
  date TIMESTAMP WITH TIME ZONE NOT NULL,
  alt_storage_id VARCHAR(255),
  alt_storage_url TEXT,
  storage_key VARCHAR(255) NOT NULL,
  storage_byte_len INTEGER NOT NULL,
  bot_score NUMERIC(5, 4) NOT NULL,
  views BIGINT NOT NULL DEFAULT 0,
  last_seen TIMESTAMP WITH TIME ZONE NOT NULL
)
;"""

CREATE_INDEX_PASTEBIN_TAGS = """
CREATE INDEX IF NOT EXISTS pastebin_tags_idx ON pastebin USING GIN (tags)
;"""

CREATE_INDEX_PASTEBIN_DATE = """
CREATE INDEX IF NOT EXISTS pastebin_date_idx ON pastebin (date)
;"""

CREATE_INDEX_PASTEBIN_USERID = """
CREATE INDEX IF NOT EXISTS pastebin_userid_idx ON pastebin (user_id)
;"""

INSERT_PASTE = """
INSERT INTO pastebin (
    paste_id
    , user_id
    , session_id
    , title
    , tags
    , format
    , date
    , alt_storage_id
    , alt_storage_url
    , storage_key
    , storage_byte_len
    , bot_score
    , views
    , last_seen
)
VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
;"""

GET_PASTE = """
SELECT
    paste_id
    , user_id
    , session_id
    , title
    , tags
    , format
    , date
    , alt_storage_id
    , alt_storage_url
    , storage_key
    , storage_byte_len
    , bot_score
    , views
    , last_seen
FROM pastebin
WHERE paste_id = %s
;"""

DELETE_PASTE = """
DELETE FROM pastebin
WHERE paste_id = %s
RETURNING storage_key, alt_storage_url
;"""

UPDATE_PASTE = """
UPDATE pastebin SET title = %s, tags = %s WHERE paste_id = %s
;"""

SAVE_VIEWS = """
UPDATE pastebin SET views = GREATEST(views, %s), last_seen = %s
WHERE paste_id = %s
;"""

SEARCH_PASTES = """
SELECT paste_id, title, tags, format, date, views FROM pastebin
WHERE tags @> %s::varchar[]
ORDER BY date DESC
LIMIT %s
OFFSET %s
;"""

GET_PASTES_BY_OWNER = """
SELECT paste_id, title, tags, format, date, views FROM pastebin
WHERE user_id = %s
ORDER BY date DESC
;"""
