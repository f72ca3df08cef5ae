import json
import uuid

import redis
from flask import current_app

PRINT_QUEUE = "print_jobs"


def get_redis():
    return redis.Redis(
        host=current_app.config["REDIS_HOST"],
        port=current_app.config["REDIS_PORT"],
        decode_responses=True
    )


def job_key(job_id: str) -> str:
    return f"print_job:{job_id}"


def set_status(r, job_id: str, **fields):
    r.hset(job_key(job_id), mapping={k: str(v) for k, v in fields.items()})


def get_status(job_id: str, r=None) -> dict:
    r = r or get_redis()
    return r.hgetall(job_key(job_id))


def enqueue(task: dict, r=None) -> str:
    r = r or get_redis()
    job_id = task.setdefault("job_id", uuid.uuid4().hex)
    set_status(r, job_id, status="queued")
    r.rpush(PRINT_QUEUE, json.dumps(task))
    return job_id
