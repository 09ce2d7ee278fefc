"""Course content seed data, upserted by id."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from tsquest.db.models import Challenge, Lesson, Level

logger = logging.getLogger(__name__)

LEVEL_SEED_DATA: list[dict] = [
    {
        "id": "1",
        "name": "TypeScript Basics",
        "description": "Learn fundamental types, interfaces, and type annotations to build a strong foundation",
        "order": 1,
        "xp_required": 0,
    },
    {
        "id": "2",
        "name": "Functions & Generics",
        "description": "Master function types, generics, and advanced type features for flexible code",
        "order": 2,
        "xp_required": 200,
    },
    {
        "id": "3",
        "name": "React + TypeScript",
        "description": "Build type-safe React applications with TypeScript for better component design",
        "order": 3,
        "xp_required": 500,
    },
    {
        "id": "4",
        "name": "Advanced Types",
        "description": "Conditional, mapped and template literal types for library-grade typings",
        "order": 4,
        "xp_required": 800,
    },
]

LESSON_SEED_DATA: list[dict] = [
    {
        "id": "1-1",
        "level_id": "1",
        "title": "Introduction to Types",
        "description": "Learn about basic TypeScript types",
        "content": "<p>TypeScript extends JavaScript by adding types to the language.</p>"
        "<pre><code>let isDone: boolean = false;\nlet count: number = 42;</code></pre>",
        "order": 1,
        "xp_reward": 20,
    },
    {
        "id": "1-2",
        "level_id": "1",
        "title": "Interfaces & Type Aliases",
        "description": "Define custom types and interfaces",
        "content": "<p>Interfaces and type aliases describe the shape of your objects.</p>"
        "<pre><code>interface User {\n  id: number;\n  name: string;\n}</code></pre>",
        "order": 2,
        "xp_reward": 20,
    },
    {
        "id": "1-3",
        "level_id": "1",
        "title": "Union & Intersection Types",
        "description": "Combine types in powerful ways",
        "content": "<p>A union type can be one of several types; an intersection combines them.</p>"
        "<pre><code>type ID = string | number;\ntype Staff = Person &amp; Employee;</code></pre>",
        "order": 3,
        "xp_reward": 20,
    },
    {
        "id": "2-1",
        "level_id": "2",
        "title": "Typing Functions",
        "description": "Parameter, return and optional types",
        "content": "<p>Annotate parameters and return values to make function contracts explicit.</p>",
        "order": 1,
        "xp_reward": 20,
    },
    {
        "id": "3-1",
        "level_id": "3",
        "title": "Typed Components",
        "description": "Props and state with TypeScript",
        "content": "<p>Describe component props with an interface and let the compiler check usage.</p>",
        "order": 1,
        "xp_reward": 20,
    },
    {
        "id": "4-1",
        "level_id": "4",
        "title": "Conditional Types",
        "description": "Types that choose between branches",
        "content": "<p><code>T extends U ? X : Y</code> selects a type based on assignability.</p>",
        "order": 1,
        "xp_reward": 20,
    },
]

CHALLENGE_SEED_DATA: list[dict] = [
    {
        "id": "1-1-1",
        "lesson_id": "1-1",
        "type": "multiple-choice",
        "prompt": "What is the primary benefit of using TypeScript over JavaScript?",
        "order": 1,
        "xp_reward": 30,
        "options": [
            "Faster runtime performance",
            "Type safety and better tooling",
            "Smaller bundle sizes",
            "Native browser support",
        ],
        "correct_answer": 1,
        "explanation": "TypeScript adds static type checking, which catches errors at compile time.",
    },
    {
        "id": "1-1-2",
        "lesson_id": "1-1",
        "type": "code",
        "prompt": "Add type annotations to all three variables below",
        "order": 2,
        "xp_reward": 30,
        "starter_code": 'let username = "Alex";\nlet age = 25;\nlet isPremium = true;',
        "validation_patterns": ["string", "number", "boolean"],
        "hint": "Use the colon syntax to add types: let name: type = value",
    },
    {
        "id": "1-2-1",
        "lesson_id": "1-2",
        "type": "multiple-choice",
        "prompt": "Which keyword is used to define an interface in TypeScript?",
        "order": 1,
        "xp_reward": 30,
        "options": ["class", "interface", "type", "struct"],
        "correct_answer": 1,
        "explanation": "The 'interface' keyword is used to define object shapes in TypeScript.",
    },
    {
        "id": "1-2-2",
        "lesson_id": "1-2",
        "type": "code",
        "prompt": "Create an interface named 'Product' with properties: id (number), name (string), and price (number)",
        "order": 2,
        "xp_reward": 30,
        "starter_code": "// Define your Product interface here\n",
        "validation_patterns": ["interface", "Product", "id", "number", "name", "string", "price"],
        "hint": "Use the interface keyword followed by the name and curly braces with property definitions",
    },
    {
        "id": "1-3-1",
        "lesson_id": "1-3",
        "type": "multiple-choice",
        "prompt": "What does the | symbol represent in TypeScript types?",
        "order": 1,
        "xp_reward": 30,
        "options": ["Intersection type", "Union type", "Optional property", "Type assertion"],
        "correct_answer": 1,
        "explanation": "The | symbol creates a union type, meaning a value can be one of several types.",
    },
    {
        "id": "2-1-1",
        "lesson_id": "2-1",
        "type": "multiple-choice",
        "prompt": "How do you mark a parameter as optional?",
        "order": 1,
        "xp_reward": 30,
        "options": ["param!", "param?", "?param", "optional param"],
        "correct_answer": 1,
        "explanation": "A trailing question mark makes a parameter optional.",
    },
    {
        "id": "3-1-1",
        "lesson_id": "3-1",
        "type": "multiple-choice",
        "prompt": "Where do you usually declare a component's prop types?",
        "order": 1,
        "xp_reward": 30,
        "options": ["In a CSS file", "In an interface or type alias", "In package.json", "In the JSX"],
        "correct_answer": 1,
        "explanation": "Props are described with an interface or type alias.",
    },
    {
        "id": "4-1-1",
        "lesson_id": "4-1",
        "type": "multiple-choice",
        "prompt": "What does `T extends string ? 'yes' : 'no'` evaluate to for T = 'a'?",
        "order": 1,
        "xp_reward": 30,
        "options": ["'no'", "'yes'", "never", "string"],
        "correct_answer": 1,
        "explanation": "'a' is assignable to string, so the true branch is taken.",
    },
]


async def _upsert(db: AsyncSession, model: type, rows: list[dict]) -> int:
    for data in rows:
        obj = await db.get(model, data["id"])
        if obj is None:
            db.add(model(**data))
        else:
            for field, value in data.items():
                setattr(obj, field, value)
    await db.flush()
    return len(rows)


async def seed_content(db: AsyncSession) -> int:
    """Upsert all levels, lessons and challenges. Returns rows seeded."""
    seeded = await _upsert(db, Level, LEVEL_SEED_DATA)
    seeded += await _upsert(db, Lesson, LESSON_SEED_DATA)
    seeded += await _upsert(db, Challenge, CHALLENGE_SEED_DATA)
    await db.commit()
    logger.info("Seeded %d content rows", seeded)
    return seeded
