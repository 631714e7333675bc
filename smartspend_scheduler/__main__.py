"""Run the scheduler service: python -m smartspend_scheduler"""

import uvicorn

if __name__ == "__main__":
    uvicorn.run("smartspend_scheduler.api.main:app", host="0.0.0.0", port=8000, log_config=None)
