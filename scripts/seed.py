"""Database seeder for feed benchmarks (authors, tags, posts, comments)."""
import asyncio
import argparse
import random
import time
from datetime import datetime, timezone, timedelta

from sqlalchemy import insert

from feedapi.database import engine, async_session, Base
from feedapi.models import Author, Comment, Post, Tag, post_tags

TAGS = ["JavaScript", "TypeScript", "React", "Node.js", "SQL", "Database", "Performance",
        "Security", "API", "Frontend", "Backend", "DevOps", "Testing", "Architecture",
        "Best Practices", "Tutorial", "Guide", "Tips", "Advanced", "Beginner"]

FIRST_NAMES = ["James", "Mary", "John", "Patricia", "Robert", "Jennifer", "Michael", "Linda",
               "William", "Barbara", "David", "Elizabeth", "Richard", "Susan", "Joseph", "Jessica"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis",
              "Rodriguez", "Martinez", "Hernandez", "Lopez", "Gonzalez", "Wilson", "Anderson"]

TOPICS = ["Introduction to", "Getting Started with", "Understanding", "Mastering",
          "Best Practices for", "Common Pitfalls in", "Debugging", "Optimizing", "Scaling"]
SUBJECTS = ["Node.js", "React", "SQL Server", "REST APIs", "GraphQL", "Database Design",
            "Microservices", "Async Programming", "Error Handling", "Caching", "Indexing"]

COMMENTS = [
    "Great article! This really helped me understand {subject}.",
    "Thanks for sharing, the section on {subject} was very clear.",
    "I had a different experience with {subject} in production.",
    "Could you write a follow-up about {subject} performance?",
    "Bookmarked. {subject} finally makes sense to me.",
    "Hello from a long-time reader, more posts on {subject} please!",
]


def author_name(index: int) -> str:
    first = FIRST_NAMES[index % len(FIRST_NAMES)]
    last = LAST_NAMES[(index // len(FIRST_NAMES)) % len(LAST_NAMES)]
    return f"{first} {last}"


async def seed(small: bool = False):
    num_authors = 20 if small else 500
    num_posts = 100 if small else 10000
    max_comments_per_post = 3 if small else 10

    print(f"Seeding: {num_authors} authors, {num_posts} posts, up to {max_comments_per_post} comments each")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        tags = [Tag(name=name) for name in TAGS]
        session.add_all(tags)
        await session.flush()
        print(f"  Created {len(tags)} tags")

        authors = []
        for i in range(num_authors):
            authors.append(Author(
                name=author_name(i),
                email=f"user{i}@example.com",
                bio=f"Writer and developer with {random.randint(1, 15)} years of experience.",
            ))
        session.add_all(authors)
        await session.flush()
        print(f"  Created {len(authors)} authors")

        batch_size = 500
        total_comments = 0
        now = datetime.now(timezone.utc)
        for batch_start in range(0, num_posts, batch_size):
            batch_end = min(batch_start + batch_size, num_posts)
            posts = []
            subjects = []
            for i in range(batch_start, batch_end):
                subject = random.choice(SUBJECTS)
                subjects.append(subject)
                posts.append(Post(
                    title=f"{random.choice(TOPICS)} {subject}",
                    content=f"This is post {i} about {subject}. " * 20,
                    author_id=random.choice(authors).id,
                    created_at=now - timedelta(minutes=random.randint(0, 525600)),
                ))
            session.add_all(posts)
            await session.flush()

            tag_rows = []
            comments = []
            for post, subject in zip(posts, subjects):
                for tag in random.sample(tags, k=random.randint(1, 4)):
                    tag_rows.append({"post_id": post.id, "tag_id": tag.id})
                for _ in range(random.randint(0, max_comments_per_post)):
                    comments.append(Comment(
                        content=random.choice(COMMENTS).format(subject=subject),
                        post_id=post.id,
                        author_id=random.choice(authors).id,
                    ))
            await session.execute(insert(post_tags), tag_rows)
            session.add_all(comments)
            await session.flush()
            total_comments += len(comments)

            print(f"  Batch {batch_start}-{batch_end}: posts created")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Authors: {num_authors}")
    print(f"  Posts: {num_posts}")
    print(f"  Comments: {total_comments}")
    print(f"  Tags: {len(TAGS)}")


def main():
    parser = argparse.ArgumentParser(description="Seed the feed database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 posts)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
