"""
Markdown bodies compiled into the package.

Used as the fallback tier when a built-in tutorial's network document
cannot be fetched, and as the full-text corpus for content search.
"""

from typing import Dict

EMBEDDED_CONTENT: Dict[str, str] = {
    "duckdb-basics": """
# DuckDB SQL: The Complete Beginner Tutorial

## Contents
1. [Getting set up](#1-getting-set-up)
2. [Databases and tables](#2-databases-and-tables)
3. [Create, read, update, delete (CRUD)](#3-crud)
4. [Joins](#4-joins)
5. [Views](#5-views)
6. [Transactions](#6-transactions)
7. [Advanced features](#7-advanced-features)

---

## 1. Getting set up

### Installing DuckDB

```bash
# Python
pip install duckdb

# CLI (macOS)
brew install duckdb
```

### Starting DuckDB

```bash
# In-memory mode (nothing is persisted)
duckdb

# File mode (data is persisted to my_database.db)
duckdb my_database.db
```

### Using DuckDB from Python

```python
import duckdb

con = duckdb.connect("my_database.db")
con.execute("SELECT 'Hello DuckDB!' AS greeting").fetchall()
```

---

## 2. Databases and tables

### 2.1 CREATE TABLE

```sql
CREATE TABLE students (
    id      INTEGER PRIMARY KEY,
    name    VARCHAR NOT NULL,
    age     INTEGER,
    enrolled DATE DEFAULT current_date
);
```

### 2.2 ALTER and DROP

```sql
ALTER TABLE students ADD COLUMN email VARCHAR;
DROP TABLE IF EXISTS old_students;
```

---

## 3. CRUD

```sql
INSERT INTO students (id, name, age) VALUES (1, 'Ada', 21), (2, 'Linus', 23);
SELECT name, age FROM students WHERE age > 21 ORDER BY name;
UPDATE students SET age = age + 1 WHERE id = 1;
DELETE FROM students WHERE id = 2;
```

---

## 4. Joins

```sql
SELECT s.name, c.title
FROM students s
JOIN enrollments e ON e.student_id = s.id
LEFT JOIN courses c ON c.id = e.course_id;
```

---

## 5. Views

```sql
CREATE VIEW adult_students AS
SELECT * FROM students WHERE age >= 18;
```

---

## 6. Transactions

```sql
BEGIN TRANSACTION;
UPDATE accounts SET balance = balance - 100 WHERE id = 1;
UPDATE accounts SET balance = balance + 100 WHERE id = 2;
COMMIT;
```

---

## 7. Advanced features

- Read CSV and Parquet directly: `SELECT * FROM 'data.parquet';`
- Window functions: `ROW_NUMBER() OVER (PARTITION BY course ORDER BY score DESC)`
- Export results: `COPY students TO 'students.csv' (HEADER);`

> **Learning goal**: after this lesson you can create tables, query and
> modify rows, combine tables with joins and keep changes consistent with
> transactions.
""",
    "philosophy-db": """
# Philosophy Database: A First Design Exercise

Build a minimal runnable universe of concepts, thinkers and schools, and
learn entity/attribute/relationship modelling along the way.

---

## Schema

```sql
CREATE TABLE concepts (
    concept_id  INTEGER PRIMARY KEY,
    name        VARCHAR NOT NULL,
    definition  VARCHAR
);

CREATE TABLE thinkers (
    thinker_id  INTEGER PRIMARY KEY,
    name        VARCHAR NOT NULL,
    era         VARCHAR
);

CREATE TABLE schools (
    school_id   INTEGER PRIMARY KEY,
    name        VARCHAR NOT NULL
);

-- many-to-many: a thinker may belong to several schools
CREATE TABLE thinker_schools (
    thinker_id  INTEGER REFERENCES thinkers(thinker_id),
    school_id   INTEGER REFERENCES schools(school_id),
    PRIMARY KEY (thinker_id, school_id)
);
```

---

## Sample data

```sql
INSERT INTO schools VALUES (1, 'Confucianism'), (2, 'Daoism');
INSERT INTO thinkers VALUES
    (1, 'Confucius', 'Spring and Autumn'),
    (2, 'Laozi', 'Spring and Autumn'),
    (3, 'Zhuangzi', 'Warring States'),
    (4, 'Mencius', 'Warring States');
INSERT INTO thinker_schools VALUES (1, 1), (2, 2), (3, 2), (4, 1);
```

---

## Query examples

### Thinkers per school

```sql
SELECT
    s.name AS school,
    COUNT(ts.thinker_id) AS thinker_count
FROM schools s
LEFT JOIN thinker_schools ts ON s.school_id = ts.school_id
GROUP BY s.school_id, s.name
ORDER BY thinker_count DESC;
```

### A view over the relationship

```sql
CREATE VIEW school_members AS
SELECT s.name AS school, t.name AS thinker
FROM thinker_schools ts
JOIN schools s USING (school_id)
JOIN thinkers t USING (thinker_id);
```

---

> **Learning goal**: after this lesson you can model entities and
> many-to-many relationships in DuckDB and distinguish concepts, thinkers
> and schools as separate ontological kinds.
""",
}
