from routers import auth, users, boards, stages, tasks

# Order here is the order procedures appear in the API document
app_routers = [
    auth.router,
    users.router,
    boards.router,
    stages.router,
    tasks.router,
]
